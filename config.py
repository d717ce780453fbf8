#!/usr/bin/python
# -*- coding: utf-8 -*-

# every data slot starts with this value until the first difference is applied
DEFAULT_VALUE = 0xF0

# the EDM-760 is the only twin engine model
TWIN_MODEL = 760

# hopefully enough capacity for any single .DAT file
MAX_FLIGHTS = 512

MAX_TAILNUM = 15

# record interval sanity check, see decoder.clampInterval
MIN_INTERVAL = 2
MAX_INTERVAL = 512
DEFAULT_INTERVAL = 6


# firmware version (x100) from which the checksum changed from XOR to SUM,
# and the version string written back when downgrading a file
# model: (newversion, oldversion)
checksum_models = {
    760: (140, '139'), # EDM-760 has a different versioning stream, "new" version is a guess
}
checksum_default = (300, '299') # all other models known at this point


NA = '"NA"'
MARK = '"S"'

CSV_SUFFIX = '-HACK'
DAT_SUFFIX = '-HACK'
DAT_EXT = '.DAT'

LOG_FORMAT = '%(message)s'
LOG_LEVEL = 'INFO'

# stop the whole batch on the first bad file (-k to keep going)
ABORT_ON_ERROR = True
