#!/usr/bin/python
# -*- coding: utf-8 -*-

import config
import fields

import numpy as np


def wrap16(v):
    '''values are kept as signed 16 bits, like the instrument does'''
    v &= 0xFFFF
    return v - 0x10000 if v & 0x8000 else v


class Snapshot(object):
    '''
    Current absolute value of every data slot for one flight.

    It is created once per flight and every data record applies its
    differences to it, it is never reset in the middle of a flight.
    '''

    def __init__(self, engines=1):
        self.engines = engines
        self.values = np.full(fields.NUM_SLOTS, config.DEFAULT_VALUE, dtype=np.int16)
        self.na = np.zeros(fields.NUM_SLOTS, dtype=bool)
        self.dif = [0, 0]

        if engines == 1:
            # seen only one example of this, unclear why it's an exception to
            # the 0xF0 initialization
            self.values[fields.HP] = 0
            self.values[fields.RPM_HIGHBYTE] = 0 # really a "scale" byte

    def copy(self):
        other = Snapshot.__new__(Snapshot)
        other.engines = self.engines
        other.values = self.values.copy()
        other.na = self.na.copy()
        other.dif = list(self.dif)
        return other

    def value(self, slot):
        return int(self.values[slot])

    def isNA(self, slot):
        return bool(self.na[slot])

    def setValue(self, slot, value):
        self.values[slot] = wrap16(value)

    def applyDelta(self, slot, diff, negative):
        '''
        A difference flagged as present but equal to zero marks the value as NA,
        the stored value itself is left as is until a non zero difference arrives.
        '''
        self.na[slot] = diff == 0
        if negative: diff = -diff
        self.setValue(slot, self.value(slot) + diff)

    def applyHighByte(self, slot, diff, negative):
        # a zero high byte was already flagged by the low byte if needed
        if diff == 0: return
        self.na[slot] = False
        diff <<= 8
        if negative: diff = -diff
        self.setValue(slot, self.value(slot) + diff)

    def fixRpmHighByte(self, rpmNegative):
        '''
        The RPM high byte doesn't follow its own sign bit but the one of RPM.
        Only for single engine models, on the twin this slot is the right CDT.
        '''
        highbyte = self.value(fields.RPM_HIGHBYTE)
        if rpmNegative:
            highbyte = -highbyte
            self.setValue(fields.RPM_HIGHBYTE, highbyte)
        if highbyte != 0:
            self.na[fields.RPM] = False

    def foldRpm(self):
        self.setValue(fields.RPM, self.value(fields.RPM) + (self.value(fields.RPM_HIGHBYTE) << 8))
        self.setValue(fields.RPM_HIGHBYTE, 0)

    def egtSlots(self, engine, cyls):
        # cyls 7, 8 & 9 are stored in the second engine block
        return [i + engine * fields.TWINJUMP if i < 6 else i - 6 + fields.EXTRA_EGT
                for i in range(cyls)]

    def computeSpread(self, cyls):
        for engine in range(self.engines):
            slots = np.array(self.egtSlots(engine, cyls), dtype=int)
            slots = slots[~self.na[slots]]
            if len(slots):
                egts = self.values[slots].astype(int)
                self.dif[engine] = wrap16(int(egts.max() - egts.min()))
            else:
                self.dif[engine] = 0
