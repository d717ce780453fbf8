#!/usr/bin/python
# -*- coding: utf-8 -*-

# based on http://www.rows.ws/jpihack/ and https://github.com/wannamak/edmtools

import config
import fields

from checksum import ChecksumScheme, headerChecksum
from errors import EDMCapacityError, EDMChecksumError, EDMFormatError

from collections import namedtuple
from collections import OrderedDict
from datetime import datetime
import logging
import string


logger = logging.getLogger(__name__)


Limits = namedtuple('Limits', 'voltsHi voltsLo dif cht cld tit oilHi oilLo')
Fuel = namedtuple('Fuel', 'warn1 capacity warn2 kf1 kf2')
Timestamp = namedtuple('Timestamp', 'mon day yr hh mm unknown')
FlightEntry = namedtuple('FlightEntry', 'fnum length')


class InstrumentConfig(object):

    def __init__(self, model, flags, unknown, firmwareVersion, extra=()):
        self.model = model
        self.flags = flags
        self.unknown = unknown
        self.firmwareVersion = firmwareVersion
        self.extra = tuple(extra)

    @property
    def engines(self):
        return fields.numEngines(self.model)

    @property
    def cyls(self):
        return fields.numCyls(self.flags)


class EDMHeader(object):

    def __init__(self):
        self.tailNumber = ''
        self.limits = None
        self.fuel = None
        self.timestamp = None
        self.config = None
        self.scheme = None
        self.headerEnd = None
        self.flights = []
        self.other = OrderedDict()
        self.lines = []

    def describe(self):
        info = OrderedDict()
        info['TAIL NO'] = self.tailNumber

        limits = self.limits
        if limits:
            info['VOLTS LIMIT HIGH'] = limits.voltsHi / 10.0
            info['VOLTS LIMIT LOW'] = limits.voltsLo / 10.0
            info['EGT SPAN DIF'] = limits.dif
            info['HIGH CHT TEMP'] = limits.cht
            info['SHOCK COOLING CLD'] = limits.cld
            info['HIGH TIT TEMP'] = limits.tit
            info['OIL-T LIMIT HIGH'] = limits.oilHi
            info['OIL-T LIMIT LOW'] = limits.oilLo

        fuel = self.fuel
        if fuel:
            info['FUEL WARNING 1'] = fuel.warn1
            info['FUEL CAPACITY'] = fuel.capacity
            info['FUEL WARNING 2'] = fuel.warn2
            info['K-FACTOR 1'] = fuel.kf1 / 100.0
            info['K-FACTOR 2'] = fuel.kf2 / 100.0

        ts = self.timestamp
        if ts:
            try:
                info['DOWNLOAD DATE TIME'] = datetime(ts.yr + 2000, ts.mon, ts.day, ts.hh, ts.mm)
            except ValueError:
                info['DOWNLOAD DATE TIME'] = '%d/%d/%d %d:%d' % (ts.mon, ts.day, ts.yr, ts.hh, ts.mm)
            info['UNKNOWN T'] = ts.unknown

        conf = self.config
        if conf:
            info['EDM TYPE'] = conf.model
            info['FLAGS'] = '0x%08X' % conf.flags
            info['CYLINDERS'] = conf.cyls
            info['ENGINES'] = conf.engines
            info['VERSION'] = conf.firmwareVersion / 100.0
            info['UNKNOWN C'] = conf.unknown
            for i, value in enumerate(conf.extra):
                info['UNKNOWN C' + str(i + 5)] = value
            info['NEW CHECKSUM'] = self.scheme.isNew

        for key, value in self.other.items():
            info['$' + key] = value

        info['FLIGHTS'] = len(self.flights)
        return info


def checkHeaderChecksum(line):
    endp = line.rfind('*')
    if endp < 0:
        raise EDMFormatError('Header checksum format error: %s' % line)

    digits = line[endp + 1:]
    if len(digits) != 2 or not all(c in string.hexdigits for c in digits):
        raise EDMFormatError('Header checksum format error: %s' % line)
    check = int(digits, 16)

    if check != headerChecksum(line):
        raise EDMChecksumError('Header checksum failed: %s' % line)


def toShort(value):
    try:
        value = int(value)
    except ValueError:
        return None
    return value if 0 <= value <= 0xFFFF else None


def parseShorts(line, count):
    '''
    list of short values, which is most of the text header records

    Only the first count values must be there, anything after them is kept
    when it is a valid short and dropped otherwise.
    '''
    values = line[:line.rfind('*')].split(',')[1:]
    if len(values) < count:
        raise EDMFormatError('Not enough values (%d): %s' % (count, line))

    result = []
    for i, value in enumerate(values):
        short = toShort(value)
        if short is not None:
            result.append(short)
        elif i < count:
            raise EDMFormatError('Invalid value %r: %s' % (value, line))
    return result


def patchVersion(data, start, line, oldVersion):
    '''
    Change the firmware version of the $C record in place, in case this header
    is written back by the checksum rewriter.

    Returns False if the line doesn't look as expected, it's then left alone.
    '''
    ver = line.rfind(',')
    endp = line.rfind('*')
    if ver < 0 or endp < 0:
        return False

    ver += 1
    while line[ver] == ' ': ver += 1
    if endp - ver != 3 or len(line) < endp + 3:
        return False

    line = line[:ver] + oldVersion + line[endp:]
    cs = '%02X' % headerChecksum(line)
    line = line[:endp + 1] + cs + line[endp + 3:]

    data[start:start + len(line)] = line.encode('latin-1')
    return True


def parseHeader(data):
    '''
Header records are "$X,....*NN\\r\\n" where X is a letter for a record type, and
header records are just text lines delimited by line feeds. Most are series of
numeric short values just converted to comma delimited ascii.

Header records all end in "*NN", where the NN is two hex digits. It is a
checksum, computed by a byte which is the XOR of all the bytes in the header
line excluding the initial '$' and trailing '*NN'.

$U = tail number
    "$U,N12345_*59"
$A = configured limits
    VoltsHi*10,VoltsLo*10,DIF,CHT,CLD,TIT,OilHi,OilLo
    "$A,305,230,500,415,60,1650,230,90*7F"
$F = fuel flow config and limits
    warning,capacity,warning,kfactor,kfactor
    "$F,0,999, 0,2950,2950*53"
$T = timestamp of download, fielded
    MM,DD,YY,hh,mm,?? maybe some kind of seq num but not strictly sequential?
    "$T, 5,13, 5,23, 2, 2222*65"
$C = config info (only partially known)
    model#,feature flags lo, feature flags hi, unknown flags,firmware version
    "$C, 700,63741, 6193, 1552, 292*58"
$D = flight info, one line per flight
    flight#, length of flight's data in 16 bit words
    "$D,  227, 3979*57"
$L = last header record, unknown meaning
    "$L, 49*4D"

    data must be a bytearray, the $C record gets patched in place.
    '''

    header = EDMHeader()
    size = len(data)
    i = 0 # current position within the buffer being parsed

    while i < size:
        cr = data.find(b'\r', i)
        if cr < 0:
            break
        if data[cr + 1:cr + 2] != b'\n':
            raise EDMFormatError('Expected CR LF at end of header record: %r' % bytes(data[i:cr]))

        start = i
        line = data[start:cr].decode('latin-1')
        i = cr + 2

        checkHeaderChecksum(line)

        if not line.startswith('$') or len(line) < 2:
            raise EDMFormatError('Expected $ at beginning of record:\n --> %s' % line)

        header.lines.append(line)
        key = line[1]

        if key == 'U':
            tail = line[3:]
            header.tailNumber = tail[:tail.find('*')][:config.MAX_TAILNUM]

        elif key == 'A':
            header.limits = Limits(*parseShorts(line, 8)[:8])

        elif key == 'F':
            header.fuel = Fuel(*parseShorts(line, 5)[:5])

        elif key == 'T':
            header.timestamp = Timestamp(*parseShorts(line, 6)[:6])

        elif key == 'C':
            values = parseShorts(line, 5)
            model = values[0]
            flags = values[1] | (values[2] << 16)
            header.config = InstrumentConfig(model, flags, values[3], values[4], values[5:])

            # find which firmware version is "new" for this model of instrument
            header.scheme = ChecksumScheme(model, values[4])

            if header.scheme.isNew:
                if not patchVersion(data, start, line, header.scheme.oldVersion):
                    logger.warning('Unable to change the firmware version of: %s', line)

        elif key == 'L':
            parseShorts(line, 1)
            header.headerEnd = i

            if header.config is None:
                raise EDMFormatError('Missing $C record')

            # normal exit path
            return header

        elif key == 'D':
            if len(header.flights) >= config.MAX_FLIGHTS:
                raise EDMCapacityError('This program can only handle %d flights per file' % config.MAX_FLIGHTS)
            fnum, length = parseShorts(line, 2)[:2]
            header.flights.append(FlightEntry(fnum, length))

        else:
            logger.info('Unrecognized header record:\n --> %s', line)
            header.other[key] = line[3:line.rfind('*')].strip()

    raise EDMFormatError('Unexpected end of .DAT file')
