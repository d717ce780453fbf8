#!/usr/bin/python
# -*- coding: utf-8 -*-


class EDMError(Exception):
    pass


class EDMFormatError(EDMError):
    '''malformed header record, truncated data, mismatched flight numbers...'''


class EDMChecksumError(EDMFormatError):
    pass


class EDMCapacityError(EDMError):
    '''more flights than config.MAX_FLIGHTS'''


class EDMIOError(EDMError):

    def __init__(self, msg, fileName, err):
        EDMError.__init__(self, '%s %s\n%s' % (msg, fileName, err.strerror or err))
        self.fileName = fileName
        self.err = err
