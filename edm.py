#!/usr/bin/python
# -*- coding: utf-8 -*-

# based on http://www.rows.ws/jpihack/ and https://github.com/wannamak/edmtools

import config

from decoder import FlightDecoder
from errors import EDMError, EDMIOError
from header import parseHeader
from report import csvName, writeReport
from rewrite import recomputeChecksums

import logging
import os
import sys


logger = logging.getLogger(__name__)


class EDMData(object):
    '''
    Everything known about one .DAT file. A new one is created for each file,
    nothing is shared between files.
    '''

    def __init__(self, fileName, outDir=None, suffix=True):
        self.fileName = fileName
        self.outDir = outDir or os.path.dirname(fileName) or '.'
        self.suffix = suffix
        self.data = None
        self.header = None

    def read(self):
        try:
            with open(self.fileName, "rb") as f: self.data = bytearray(f.read())
        except OSError as e:
            raise EDMIOError('Unable to open file', self.fileName, e)

        if not self.data:
            raise EDMIOError('Error reading file', self.fileName, OSError('empty file'))

    def parseHeader(self):
        self.header = parseHeader(self.data)
        return self.header

    def parseFlights(self, only=None):
        '''write one CSV file per flight, returns the list of files written'''
        decoder = FlightDecoder(self.data, self.header)
        files = []

        for flight, samples in decoder.flights(only):
            fileName = os.path.join(self.outDir, csvName(flight.fnum, self.suffix))
            rows = writeReport(fileName, self.header, flight, samples)
            logger.info('flight %d: %d rows', flight.fnum, rows)
            files.append(fileName)

        return files

    def rewrittenName(self):
        name = os.path.splitext(os.path.basename(self.fileName))[0]
        return os.path.join(self.outDir, name + config.DAT_SUFFIX + config.DAT_EXT)

    def recomputeChecksums(self):
        '''returns the name of the file written, None if nothing had to change'''
        if not recomputeChecksums(self.data, self.header):
            return None

        fileName = self.rewrittenName()
        try:
            with open(fileName, "wb") as f: f.write(self.data)
        except OSError as e:
            raise EDMIOError('Unable to write output file', fileName, e)

        return fileName


def processFile(fileName, outDir=None, rewrite=False, suffix=True, only=None, showHeader=False):
    data = EDMData(fileName, outDir, suffix)
    data.read()
    header = data.parseHeader()

    if showHeader:
        for line in header.lines:
            print(line)
        print('')
        for key, value in header.describe().items():
            print(key, value)
        print('')

    if rewrite:
        return data.recomputeChecksums()
    return data.parseFlights(only)


usage = '''\
edm.py [-r] [-s] [-k] [-h] [-f#] [-oDIR] datfiles

  datfiles are a list of .DAT or .JPI files to translate.

  -r      Instead of translating the .DAT file to .CSV files, change the .DAT
          file back to the older checksum format supported by EZSave. The
          resulting file is named with the suffix -HACK (e.g. Ryymmdd-HACK.DAT).
  -s      Suppress CSV file name suffixing (i.e. no Fnnnnn-HACK.CSV naming)
  -f#     Extract only flight # (# is numeric value)
  -oDIR   Write the output files to DIR instead of next to each input file
  -h      Display the file header
  -k      Keep going with the next file after an error
'''


def main(argv):
    logging.basicConfig(format=config.LOG_FORMAT, level=config.LOG_LEVEL)

    if not argv:
        print(usage)
        return 0

    rewrite = False
    suffix = True
    only = None
    outDir = None
    showHeader = False
    abortOnError = config.ABORT_ON_ERROR
    failed = 0

    # switches only apply to the files that follow them
    for arg in argv:
        if arg.startswith('-'):
            switch = arg[1:2].lower()
            if switch == 'r': rewrite = True
            elif switch == 's': suffix = False
            elif switch == 'h': showHeader = True
            elif switch == 'k': abortOnError = False
            elif switch == 'o' and arg[2:]: outDir = arg[2:]
            elif switch == 'f' and arg[2:].isdigit(): only = int(arg[2:])
            elif switch == '?':
                print(usage)
                return 0
            else:
                logger.error('Unknown switch %s', arg)
                return 1
            continue

        logger.info(arg)
        try:
            processFile(arg, outDir, rewrite, suffix, only, showHeader)
        except EDMError as e:
            logger.error('%s: %s', arg, e)
            failed += 1
            if abortOnError:
                return 1

    return 1 if failed else 0


def cli():
    sys.exit(main(sys.argv[1:]))


if __name__ == "__main__":
    cli()
