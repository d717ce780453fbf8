#!/usr/bin/python
# -*- coding: utf-8 -*-

import config
import fields

from errors import EDMChecksumError, EDMFormatError
from snapshot import Snapshot

from datetime import datetime
from datetime import timedelta
import logging
import struct


logger = logging.getLogger(__name__)


'''
The flight header follows immediately after the $L record (or the previous
flight), 7 big endian words and a checksum byte:

struct flightheader {
   ushort flightnumber;  // matches what's in the $D record
   ulong flags;          // feature flags, low word first, may differ from the $C record
   ushort unknown;       // may contain flags about what units (e.g. F vs. C)
   ushort interval_secs; // record interval, in seconds (usually 6)
   datebits dt;          // date as fielded bits, see struct below
   timebits tm;          // time as fielded bits, see struct below
};

struct datebits {
   unsigned day:5;
   unsigned mon:4;
   unsigned year:7;
};

struct timebits {
   unsigned secs:5;      // #secs / 2 is stored
   unsigned mins:6;
   unsigned hrs:5;
};
'''

struct_flightheader = struct.Struct('!7H')

TWIN_EXTRA_CYLS = fields.F_E7 | fields.F_E8 | fields.F_E9 | fields.F_C7 | fields.F_C8 | fields.F_C9


class EDMFlight(object):

    def __init__(self, fnum, flags, unknown, interval_secs, dt, tm):
        self.fnum = fnum
        self.flags = flags
        self.unknown = unknown
        self.interval_secs = interval_secs
        self.dt = dt
        self.tm = tm
        self.date = None

    @property
    def isOatF(self):
        # not 100% sure this is the right bit, but it appears to be
        return bool(self.unknown & 0x20)


def andShift(v, i): return v & (2**i - 1), v >> i


def decodeDate(dt):
    d, dt = andShift(dt, 5)
    mo, y = andShift(dt, 4)
    return mo, d, y


def decodeTime(tm):
    s, tm = andShift(tm, 5)
    mi, h = andShift(tm, 6)
    return h, mi, s * 2


def flightDate(dt, tm):
    mo, d, y = decodeDate(dt)
    h, mi, s = decodeTime(tm)
    y += 2000 if y < 50 else 1900 # century issue after 2050
    try:
        return datetime(y, mo, d, h, mi, s)
    except ValueError as e:
        raise EDMFormatError('Invalid flight date %d/%d/%d %d:%d:%d (%s)' % (mo, d, y, h, mi, s, e))


def clampInterval(interval_secs):
    # there's probably a bit field somewhere that explains why the interval is
    # sometimes out of whack (one of the bits of the unknown value?)
    if interval_secs < config.MIN_INTERVAL or config.MAX_INTERVAL < interval_secs:
        return config.DEFAULT_INTERVAL
    return interval_secs


def bits(flags):
    return [i for i in range(8) if flags & (1 << i)]


def testbit(flags, slot):
    return bool(flags[slot // 8] & (1 << (slot % 8)))


class RecordLayout(object):
    '''
    struct record:
        byte decodeflags[2]
        // decodeflags[0] == decodeflags[1]
        byte repeatcount
        // If repeat count is non-zero, output the current data set again
        // (incrementing timestamp) and then continue processing.

        // bits 0-5 of decodeflags[0]: one valflags byte per group of 8 slots
        byte valflags[...]
        // bits 6-7 of decodeflags[0]: one scaleflags byte per engine (EGT high bytes)
        byte scaleflags[...]
        // bits 0-5 of decodeflags[1]: one signflags byte per group of 8 slots
        byte signflags[...]

        // then one difference byte for each bit set in valflags, then one high
        // byte for each bit set in scaleflags
        byte checksum
    '''

    def __init__(self, start):
        self.start = start
        self.decodeflags = (0, 0)
        self.repeatcount = 0
        self.valflags = [0] * fields.NUM_GROUPS
        self.scaleflags = [0, 0]
        self.signflags = [0] * fields.NUM_GROUPS
        self.values = start
        self.end = start

    def valueSlots(self):
        return [group * 8 + i for group, flags in enumerate(self.valflags) for i in bits(flags)]

    def scaleSlots(self):
        return [engine * fields.TWINJUMP + i for engine, flags in enumerate(self.scaleflags) for i in bits(flags)]

    def isNegative(self, slot):
        return testbit(self.signflags, slot)


def readRecordLayout(data, pos, end, engines=1):
    '''
    Read the flag bytes of the record starting at pos and locate its checksum
    byte (layout.end), without touching the values.
    '''
    layout = RecordLayout(pos)

    def nextByte():
        nonlocal pos
        if pos >= end:
            raise EDMFormatError('Unexpected end of data record')
        pos += 1
        return data[pos - 1]

    decodeflags = nextByte(), nextByte()
    layout.decodeflags = decodeflags
    layout.repeatcount = nextByte()

    if decodeflags[0] != decodeflags[1]:
        # never seen, draw attention to it
        logger.warning('Decode flags differ (%02x %02x) at offset %d', decodeflags[0], decodeflags[1], layout.start)

    for i in range(fields.NUM_GROUPS):
        if decodeflags[0] & (1 << i):
            layout.valflags[i] = nextByte()

    for i in range(2):
        if decodeflags[0] & (0x40 << i):
            layout.scaleflags[i] = nextByte()

    if layout.scaleflags[1] and engines == 1:
        logger.warning('Second engine scale flags on a single engine file at offset %d', layout.start)

    for i in range(fields.NUM_GROUPS):
        if decodeflags[1] & (1 << i):
            layout.signflags[i] = nextByte()

    layout.values = pos
    layout.end = pos + len(layout.valueSlots()) + len(layout.scaleSlots())

    if layout.end >= end:
        raise EDMFormatError('Unexpected end of data record')

    return layout


def applyRecord(snapshot, data, layout, flags):
    '''
    Values are stored as 8 bit differences from the previous value (EGTs could
    be a 16 bit difference). Sign bit determines whether the difference value is
    added or subtracted. For the EGT fields, scale bit determines whether the
    high order byte of a two byte value is stored.
    '''
    pos = layout.values

    for slot in layout.valueSlots():
        snapshot.applyDelta(slot, data[pos], layout.isNegative(slot))
        pos += 1

    for slot in layout.scaleSlots():
        snapshot.applyHighByte(slot, data[pos], layout.isNegative(slot))
        pos += 1

    # special case for the RPM high byte which follows the sign of RPM
    if snapshot.engines == 1:
        if layout.isNegative(fields.RPM_HIGHBYTE):
            logger.warning('RPM high byte has its own sign bit at offset %d', layout.start)
        snapshot.fixRpmHighByte(layout.isNegative(fields.RPM))

    snapshot.computeSpread(fields.numCyls(flags))

    if fields.hasFlags(flags, fields.F_RPM):
        snapshot.foldRpm()

    return snapshot


class FlightDecoder(object):

    def __init__(self, data, header):
        self.data = data
        self.header = header
        self.scheme = header.scheme
        self.engines = header.config.engines

    def flightRanges(self):
        '''(entry, start, end) of each flight, in the order of the $D records'''
        size = len(self.data)
        end = self.header.headerEnd

        for entry in self.header.flights:
            start = end
            end = start + entry.length * 2

            if end > size:
                raise EDMFormatError('Data ends unexpectedly (flight %d)' % entry.fnum)
            if end - start < struct_flightheader.size + 1:
                raise EDMFormatError('Flight %d data length too short' % entry.fnum)

            yield entry, start, end

    def parseFlightHeader(self, entry, start):
        data = self.data
        pos = start + struct_flightheader.size
        words = struct_flightheader.unpack_from(data, start)

        if not self.scheme.test(data[start:pos], data[pos]):
            raise EDMChecksumError('Flight header checksum failed (flight %d)' % entry.fnum)

        fnum, flagsLo, flagsHi, unknown, interval_secs, dt, tm = words
        if fnum != entry.fnum:
            raise EDMFormatError("Flight numbers don't match (%d header, %d data), invalid file" % (fnum, entry.fnum))

        flight = EDMFlight(fnum, flagsLo | (flagsHi << 16), unknown, interval_secs, dt, tm)

        # cylinders 7 to 9 are stored where the twin keeps its right engine
        if self.engines > 1 and flight.flags & TWIN_EXTRA_CYLS:
            raise EDMFormatError('Twin engine with more than 6 cylinders (flight %d)' % fnum)

        flight.date = flightDate(dt, tm)
        flight.interval_secs = clampInterval(interval_secs)
        if flight.interval_secs != interval_secs:
            logger.info('Flight %d: interval %d seconds replaced by %d', fnum, interval_secs, flight.interval_secs)

        return flight, pos + 1

    def readRecord(self, pos, end):
        '''layout of the record at pos, checksum verified'''
        layout = readRecordLayout(self.data, pos, end, self.engines)
        self.checkRecord(layout)
        return layout

    def checkRecord(self, layout):
        data = self.data
        if not self.scheme.test(data[layout.start:layout.end], data[layout.end]):
            raise EDMChecksumError('Data checksum failed at offset %d' % layout.start)

    def decodeFlight(self, flight, pos, end):
        '''
        Yields (time, snapshot) for each sample of the flight. The snapshot is
        the same object for the whole flight, copy it to keep it.
        '''
        data = self.data
        snapshot = Snapshot(self.engines)
        td = timedelta(seconds=flight.interval_secs)
        t = flight.date

        # at least 4 bytes: decode flags, repeat count and checksum
        while pos + 3 < end:
            layout = self.readRecord(pos, end)

            for i in range(layout.repeatcount):
                yield t, snapshot
                t += td

            applyRecord(snapshot, data, layout, flight.flags)
            pos = layout.end + 1

            yield t, snapshot
            t += td

    def flights(self, only=None):
        '''(flight, samples) for each flight, samples being a decodeFlight generator'''
        for entry, start, end in self.flightRanges():
            if only is not None and entry.fnum != only:
                continue

            flight, pos = self.parseFlightHeader(entry, start)
            yield flight, self.decodeFlight(flight, pos, end)
