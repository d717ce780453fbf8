#!/usr/bin/python
# -*- coding: utf-8 -*-

import config


'''
Decoding of the configuration bit flags ($C record and flight header):

-m-d fpai r2to eeee eeee eccc cccc cc-b

e = egt (up to 9 cyls)
c = cht (up to 9 cyls)
d = probably cld
b = bat
o = oil
t = tit1
2 = tit2
a = OAT
f = fuel flow
r = CDT (also CARB - not distinguished in the CSV output)
i = IAT
m = MAP
p = RPM
*** e and c may be swapped
*** d and b may be swapped (but seem to always occur anyway)
*** m, p and i may be swapped among themselves
'''

F_BAT = 0x00000001
F_C1 = 0x00000004
F_C2 = 0x00000008
F_C3 = 0x00000010
F_C4 = 0x00000020
F_C5 = 0x00000040
F_C6 = 0x00000080
F_C7 = 0x00000100
F_C8 = 0x00000200
F_C9 = 0x00000400
F_E1 = 0x00000800
F_E2 = 0x00001000
F_E3 = 0x00002000
F_E4 = 0x00004000
F_E5 = 0x00008000
F_E6 = 0x00010000
F_E7 = 0x00020000
F_E8 = 0x00040000
F_E9 = 0x00080000
F_OIL = 0x00100000
F_T1 = 0x00200000
F_T2 = 0x00400000
F_CDT = 0x00800000 # also CRB
F_IAT = 0x01000000
F_OAT = 0x02000000
F_RPM = 0x04000000
F_FF = 0x08000000
F_USD = F_FF
F_CLD = 0x10000000 # not sure
F_MAP = 0x40000000
F_DIF = F_E1 | F_E2 # DIF exists if there's more than one EGT
F_HP = F_RPM | F_MAP | F_FF
F_MARK = 0x00000001 # this bit always seems to exist

MAX_CYLS = 9


def numCyls(flags):
    n = 0
    mask = F_C1
    while n < MAX_CYLS and flags & mask:
        n += 1
        mask <<= 1
    return n


def numEngines(model):
    return 2 if model == config.TWIN_MODEL else 1


def hasFlags(flags, mask):
    # all the bits must be there, which makes the combined flags (HP, DIF) work
    return flags & mask == mask


'''
Data slots of the decompressed data record.

Each bit of a value-group byte flags one slot, 6 groups of 8 slots. The second
engine of the twin model uses the same layout 3 groups (TWINJUMP slots) further.

group 0: EGT1-6, T1, T2
group 1: CHT1-6, CLD, OIL
group 2: MARK, ?, CDT, IAT, BAT, OAT, USD, FF
group 3: right EGT1-6, HP (right T1 on twin), right T2
         single engine models with 7 to 9 cylinders store EGT7-9 and CHT7-9 here
group 4: right CHT1-6, right CLD, right OIL
group 5: MAP, RPM, RPM high byte (right CDT on twin), right IAT, ?, ?, right USD, right FF
'''

NUM_GROUPS = 6
NUM_SLOTS = NUM_GROUPS * 8

EGT = 0
T1 = 6
T2 = 7
CHT = 8
CLD = 14
OIL = 15
MARK = 16
UNKNOWN_3_1 = 17
CDT = 18
IAT = 19
BAT = 20
OAT = 21
USD = 22
FF = 23
TWINJUMP = 24
HP = 30
MAP = 40
RPM = 41
RPM_HIGHBYTE = 42
UNKNOWN_6_4 = 44
UNKNOWN_6_5 = 45

# EGT7-9 and CHT7-9
EXTRA_EGT = TWINJUMP
EXTRA_CHT = TWINJUMP + 3


class StoredField(object):

    def __init__(self, name, slot, scale=1, perEngine=True, featureFlag=0, whichEng=0):
        self.name = name
        self.slot = slot
        self.scale = scale
        self.perEngine = perEngine
        self.featureFlag = featureFlag
        self.whichEng = whichEng

    def slotFor(self, engine):
        if self.perEngine:
            return self.slot + engine * TWINJUMP
        return self.slot


class ComputedField(object):

    def __init__(self, name, compute, featureFlag=0):
        self.name = name
        self.compute = compute
        self.featureFlag = featureFlag
        self.perEngine = True
        self.whichEng = 0


def _spread(snapshot, engine):
    return snapshot.dif[engine]


def _field(name, slot, scale=1, perEngine=True, whichEng=0):
    return StoredField(name, slot, scale, perEngine, globals()['F_' + name], whichEng)


# KEEP THE FIELDS SORTED IN ORDER OF THE CSV OUTPUT
FIELDS = \
[
    _field('E1', EGT + 0), _field('E2', EGT + 1), _field('E3', EGT + 2),
    _field('E4', EGT + 3), _field('E5', EGT + 4), _field('E6', EGT + 5),
    _field('E7', EXTRA_EGT + 0), _field('E8', EXTRA_EGT + 1), _field('E9', EXTRA_EGT + 2),
    _field('C1', CHT + 0), _field('C2', CHT + 1), _field('C3', CHT + 2),
    _field('C4', CHT + 3), _field('C5', CHT + 4), _field('C6', CHT + 5),
    _field('C7', EXTRA_CHT + 0), _field('C8', EXTRA_CHT + 1), _field('C9', EXTRA_CHT + 2),
    _field('T1', T1),
    _field('T2', T2),
    _field('OIL', OIL),
    ComputedField('DIF', _spread, F_DIF),
    _field('CLD', CLD),
    _field('OAT', OAT, perEngine=False),
    _field('CDT', CDT), # not sure whether these are available on the twin model
    _field('IAT', IAT),
    _field('BAT', BAT, 10, perEngine=False, whichEng=0x01), # battery comes before FF/USD in the single models...
    _field('FF', FF, 10),
    _field('USD', USD, 10),
    _field('BAT', BAT, 10, perEngine=False, whichEng=0x02), # ...and after FF/USD in the twin model
    _field('RPM', RPM, perEngine=False), # these are only available on single engine models
    _field('MAP', MAP, 10, perEngine=False),
    _field('HP', HP, perEngine=False),

    _field('MARK', MARK, perEngine=False),
]

MARK_FIELD = FIELDS[-1]


def visible(field, flags, engine, engines):
    if not field.perEngine and engine < engines - 1:
        return False
    if field.whichEng and not field.whichEng & (1 << engine):
        return False
    return hasFlags(flags, field.featureFlag)


def columns(flags, engines, withMark=False):
    '''(engine, field) pairs in CSV order, MARK excluded unless asked for'''
    fields = FIELDS if withMark else FIELDS[:-1]
    return [(engine, field) for engine in range(engines) for field in fields
            if visible(field, flags, engine, engines)]


def titles(flags, engines):
    result = []
    for engine, field in columns(flags, engines, withMark=True):
        if not field.perEngine or engines == 1:
            prefix = ''
        elif engine > 0:
            prefix = 'R'
        else:
            prefix = 'L'
        result.append(prefix + field.name)
    return result
