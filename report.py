#!/usr/bin/python
# -*- coding: utf-8 -*-

import config
import fields

from decoder import decodeDate, decodeTime
from errors import EDMIOError

from datetime import date
import logging


logger = logging.getLogger(__name__)


'''
The CSV output mimics the files written by EZSave:

"EZSave     05/13/21"
"EDM-700 V 292 J.P.Instruments  (C) 1998"
"Aircraft Number N12345"
"Flight #227 5/13/21 9:2:34"
"Eng Deg F     OAT Deg F     F/F GPH"
"Duration  1.23Hours   Interval 6 seconds    "
"TIME","E1","E2",...,"MARK",
"9:2:34",1420,1398,...,
'''


SECS_PER_HOUR = 60.0 * 60.0


def formatValue(value, scale):
    '''scaled values are fixed point tenths'''
    if scale == 1:
        return str(value)
    q, r = divmod(abs(value), scale)
    s = ('-' if value < 0 else '') + str(q)
    if r:
        s += '.' + str(r)
    return s


def formatTime(t):
    return '"%d:%d:%d"' % (t.hour, t.minute, t.second)


def formatRow(t, snapshot, flags, engines):
    row = [formatTime(t)]

    for engine, field in fields.columns(flags, engines):
        if isinstance(field, fields.ComputedField):
            row.append(str(field.compute(snapshot, engine)))
            continue

        slot = field.slotFor(engine)
        if snapshot.isNA(slot):
            row.append(config.NA)
        else:
            row.append(formatValue(snapshot.value(slot), field.scale))

    # MARK is output as a string, not a numeric value
    row.append(config.MARK if snapshot.value(fields.MARK) else '')
    return ','.join(row) + '\n'


def formatTitles(flags, engines):
    titles = ['"TIME"'] + ['"%s"' % title for title in fields.titles(flags, engines)]
    return ','.join(titles) + ',\n' # EZSave appends an extra comma to the field names line


def formatDuration(hours):
    return '"Duration %5.2f' % hours


class FlightReport(object):
    '''
    CSV report of one flight, written to a binary stream.

    The duration is unknown until all the rows are written, its line is
    rewritten in place by close().
    '''

    def __init__(self, stream, header, flight):
        self.stream = stream
        self.header = header
        self.flight = flight
        self.engines = header.config.engines
        self.durationOffset = None
        self.lastTime = None
        self.rows = 0

    def write(self, line):
        self.stream.write(line.encode('latin-1'))

    def writeHeaders(self, today=None):
        conf = self.header.config
        flight = self.flight
        today = today or date.today()

        self.write('"EZSave     %02d/%02d/%02d"\n' % (today.month, today.day, today.year % 100))
        self.write('"EDM-%4d V %3d J.P.Instruments  (C) 1998"\n' % (conf.model, conf.firmwareVersion))
        self.write('"Aircraft Number %s"\n' % self.header.tailNumber)

        mo, d, y = decodeDate(flight.dt)
        h, mi, s = decodeTime(flight.tm)
        self.write('"Flight #%d %d/%d/%d %d:%d:%d"\n' % (flight.fnum, mo, d, y, h, mi, s))

        # UNKNOWN: there's probably a bit somewhere for engine temps in C and other fuel flow units
        line = '"Eng Deg F     OAT Deg %s ' % ('F' if flight.isOatF else 'C')
        if fields.hasFlags(flight.flags, fields.F_FF):
            line += '    F/F GPH'
        self.write(line + '"\n')

        self.durationOffset = self.stream.tell()
        self.write('%sHours   Interval %d seconds    "\n' % (formatDuration(0), flight.interval_secs))

        self.write(formatTitles(flight.flags, self.engines))

    def writeRow(self, t, snapshot):
        self.write(formatRow(t, snapshot, self.flight.flags, self.engines))
        self.lastTime = t
        self.rows += 1

    def duration(self):
        if self.lastTime is None:
            return 0.0
        return max(0.0, (self.lastTime - self.flight.date).total_seconds() / SECS_PER_HOUR)

    def writeDuration(self):
        end = self.stream.tell()
        self.stream.seek(self.durationOffset)
        self.write(formatDuration(self.duration()))
        self.stream.seek(end)

    def close(self):
        if self.durationOffset is not None:
            self.writeDuration()


def csvName(fnum, suffix=True):
    return 'F%05d%s.CSV' % (fnum, config.CSV_SUFFIX if suffix else '')


def writeReport(fileName, header, flight, samples):
    '''write the CSV file of one flight, returns the number of rows'''
    logger.info('extracting flight %d date %s -> %s', flight.fnum, flight.date, fileName)

    try:
        f = open(fileName, 'wb')
    except OSError as e:
        raise EDMIOError('Unable to open output file', fileName, e)

    with f:
        report = FlightReport(f, header, flight)
        try:
            report.writeHeaders()
            for t, snapshot in samples:
                report.writeRow(t, snapshot)
            report.close()
        except OSError as e:
            raise EDMIOError('Error writing output file', fileName, e)

    return report.rows
