#!/usr/bin/python
# -*- coding: utf-8 -*-

import config

import pandas as pd
import logging
import os
import re
import sys


logger = logging.getLogger(__name__)

# "EZSave", "EDM-", "Aircraft Number", "Flight #", "Eng Deg", "Duration"
INTRO_LINES = 6

flight_re = re.compile(r'Flight #(\d+) (\d+)/(\d+)/(\d+) (\d+):(\d+):(\d+)')


def readIntro(fileName):
    with open(fileName, 'rt', encoding='latin-1') as f:
        return [f.readline().strip().strip('"') for i in range(INTRO_LINES)]


def spread(data, cols):
    cols = [c for c in cols if c in data.columns]
    if not cols: return None
    return data[cols].max(axis=1) - data[cols].min(axis=1)


def readReport(fileName):
    '''one flight report as a DataFrame, NA values as missing'''
    intro = readIntro(fileName)
    m = flight_re.search(intro[3])
    if not m:
        raise ValueError('%s is not a flight report' % fileName)

    fnum, mo, d, y = [int(v) for v in m.groups()[:4]]
    y += 2000 if y < 50 else 1900

    data = pd.read_csv(fileName, skiprows=INTRO_LINES, delimiter=',', na_values=[config.NA.strip('"')], keep_default_na=False)
    data = data.loc[:, [c for c in data.columns if not c.startswith('Unnamed')]]

    if data.empty:
        secs = pd.Series([], dtype='int64')
    else:
        # time of day only, flights may go past midnight
        hms = data['TIME'].astype(str).str.split(':', expand=True).astype(int)
        secs = hms[0] * 3600 + hms[1] * 60 + hms[2]
        secs += (secs.diff() < 0).cumsum() * 86400

    data.insert(0, 'fnum', fnum)
    data.insert(1, 'date', pd.Timestamp(y, mo, d) + pd.to_timedelta(secs, unit='s'))
    if data.empty:
        data['duration'] = pd.Series([], dtype='int32')
    else:
        data['duration'] = ((data['date'] - data['date'].iloc[0]).dt.total_seconds() // 60).astype('int32')

    for prefix in ['', 'L', 'R']:
        egt = spread(data, [prefix + 'E' + str(i) for i in range(1, 10)])
        cht = spread(data, [prefix + 'C' + str(i) for i in range(1, 10)])
        if egt is not None: data[prefix + 'EGT_DIFF'] = egt
        if cht is not None: data[prefix + 'CHT_DIFF'] = cht

    return data


def mergeReports(csvdir):
    files = sorted(f for f in os.listdir(csvdir) if f.upper().endswith('.CSV') and f.upper().startswith('F'))

    flights = None
    for f in files:
        logger.info('reading %s', f)
        data = readReport(os.path.join(csvdir, f))

        if data.shape[0]:
            logger.info('Flight %d Date %s - Duration %d min - Rows %d', data['fnum'].iloc[0], data['date'].iloc[0], data['duration'].iloc[-1], data.shape[0])

        if flights is None:
            flights = data
        else:
            flights = pd.concat([flights, data], ignore_index=True)

    return flights


if __name__ == "__main__":
    logging.basicConfig(format=config.LOG_FORMAT, level=config.LOG_LEVEL)

    argc = len(sys.argv)
    if(argc > 1):
        csvdir = sys.argv[1]
        output = sys.argv[2] if argc > 2 else 'flights.csv'

        flights = mergeReports(csvdir)
        if flights is None:
            logger.error('no flight report in %s', csvdir)
            sys.exit(1)

        flights.to_csv(output, float_format='%.2f', index=False)

        print(flights.describe())
