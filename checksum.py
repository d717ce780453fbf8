#!/usr/bin/python
# -*- coding: utf-8 -*-

import config

from functools import reduce


'''
The header lines and every binary record are protected by a one byte checksum.

Older firmware computes it as the XOR of all the bytes, newer firmware (3.00 and
above for most models) as the negated 8 bit sum. This is the only difference
between the "old" and the "new" .DAT files.

Without knowing for sure which firmware wrote a record, both are tried, in the
order that matches the firmware version given by the $C record.
'''


def calcOldChecksum(data):
    return reduce(lambda cs, b: cs ^ b, data, 0)


def calcNewChecksum(data):
    return -sum(data) & 0xFF


def headerChecksum(line):
    '''XOR of everything between the leading '$' and the '*' '''
    return calcOldChecksum(line[1:line.rindex('*')].encode('latin-1'))


def findModel(model):
    return config.checksum_models.get(model, config.checksum_default)


class ChecksumScheme(object):

    def __init__(self, model, firmwareVersion):
        self.model = model
        self.firmwareVersion = firmwareVersion
        self.newVersion, self.oldVersion = findModel(model)

    @property
    def isNew(self):
        return self.firmwareVersion >= self.newVersion

    def test(self, data, check):
        if self.isNew:
            order = (calcNewChecksum, calcOldChecksum)
        else:
            order = (calcOldChecksum, calcNewChecksum)

        return any(calc(data) == check for calc in order)

    def legacy(self, data):
        return calcOldChecksum(data)
