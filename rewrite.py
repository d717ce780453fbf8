#!/usr/bin/python
# -*- coding: utf-8 -*-

from decoder import FlightDecoder, struct_flightheader
from errors import EDMChecksumError

import logging


logger = logging.getLogger(__name__)


'''
Change a newer .DAT file back to the XOR checksums so that EZSave can read it.

Nothing but the checksum bytes change here, the firmware version of the $C
record was already changed by the header parser. This works even on files with
options which are not recognized by the decoder as the values are not decoded,
only skipped.
'''


def recomputeChecksums(data, header):
    '''
    Rewrite data (a bytearray) in place.

    Returns False, leaving data alone, when the file already uses the old
    checksum.
    '''
    scheme = header.scheme

    if not scheme.isNew:
        logger.info('This data file is the older version and does not need to be changed')
        return False

    decoder = FlightDecoder(data, header)
    records = 0

    for entry, start, end in decoder.flightRanges():
        pos = start + struct_flightheader.size

        if not scheme.test(data[start:pos], data[pos]):
            raise EDMChecksumError('Flight header checksum failed (flight %d)' % entry.fnum)
        data[pos] = scheme.legacy(data[start:pos])
        pos += 1

        while pos + 3 < end:
            layout = decoder.readRecord(pos, end)
            data[layout.end] = scheme.legacy(data[layout.start:layout.end])
            pos = layout.end + 1
            records += 1

    logger.info('%d flights, %d records rewritten', len(header.flights), records)
    return True
