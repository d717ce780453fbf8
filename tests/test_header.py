"""
Unit tests for the header parser
"""

import logging

import pytest

import config
import datfile
from errors import EDMCapacityError, EDMChecksumError, EDMFormatError
import header as header_module
from header import checkHeaderChecksum, parseHeader, parseShorts


def header_bytes(*lines):
    return bytearray(b''.join(datfile.header_line(line) for line in lines))


class TestParseHeader:
    """Test parsing a complete header block"""

    def setup_method(self):
        """Set up test fixtures"""
        self.raw = datfile.build_header(700, datfile.FLAGS_4CYL, 292, [(12, 40), (13, 80)])
        self.data = bytearray(self.raw + b'\x00' * 10)
        self.header = parseHeader(self.data)

    def test_records(self):
        """All the known records are parsed"""
        header = self.header
        assert header.tailNumber == 'N12345'
        assert header.limits.voltsHi == 305
        assert header.limits.oilLo == 90
        assert header.fuel.capacity == 999
        assert header.fuel.kf2 == 2950
        assert header.timestamp.yr == 21
        assert header.timestamp.unknown == 2222

    def test_config(self):
        """$C gives model, flags and firmware version"""
        conf = self.header.config
        assert conf.model == 700
        assert conf.flags == datfile.FLAGS_4CYL
        assert conf.unknown == 1552
        assert conf.firmwareVersion == 292
        assert conf.cyls == 4
        assert conf.engines == 1
        assert not self.header.scheme.isNew

    def test_flight_index(self):
        """$D records are kept in order"""
        assert [(f.fnum, f.length) for f in self.header.flights] == [(12, 40), (13, 80)]

    def test_header_end(self):
        """Flight data starts right after the $L record"""
        assert self.header.headerEnd == len(self.raw)

    def test_old_version_not_patched(self):
        """Old firmware files are left alone"""
        assert bytes(self.data[:len(self.raw)]) == self.raw

    def test_describe(self):
        """Summary uses real units"""
        info = self.header.describe()
        assert info['TAIL NO'] == 'N12345'
        assert info['VOLTS LIMIT HIGH'] == 30.5
        assert info['K-FACTOR 1'] == 29.5
        assert info['VERSION'] == 2.92
        assert info['CYLINDERS'] == 4
        assert info['FLIGHTS'] == 2
        assert info['DOWNLOAD DATE TIME'].year == 2021

    def test_twin_engine(self):
        """The EDM-760 is the twin engine model"""
        header = parseHeader(bytearray(datfile.build_header(760, 0x180C, 130, [])))
        assert header.config.engines == 2
        assert header.config.cyls == 2

    def test_tail_number_length(self):
        """Tail number is cut after 15 characters"""
        header = parseHeader(header_bytes('$U,ABCDEFGHIJKLMNOPQRS', '$C,700,0,0,0,292', '$L,0'))
        assert header.tailNumber == 'ABCDEFGHIJKLMNO'

    def test_extra_config_values(self):
        """Additional $C values are kept as unknowns"""
        header = parseHeader(header_bytes('$C,700,1,2,3,292,7,8', '$L,0'))
        assert header.config.flags == 0x00020001
        assert header.config.extra == (7, 8)


class TestHeaderErrors:
    """Test the fatal header conditions"""

    def test_bad_checksum(self):
        """Checksum mismatch is fatal"""
        data = bytearray(datfile.build_header(700, datfile.FLAGS_4CYL, 292, []))
        data[5] ^= 0x01
        with pytest.raises(EDMChecksumError):
            parseHeader(data)

    def test_missing_star(self):
        """A line without '*' is a format error"""
        with pytest.raises(EDMFormatError):
            parseHeader(bytearray(b'$U,N12345\r\n$L,0*00\r\n'))

    def test_missing_dollar(self):
        """A record must start with '$'"""
        line = 'XU,N1'
        data = bytearray(('%s*%02X\r\n' % (line, datfile.old_checksum(line[1:].encode('ascii')))).encode('ascii'))
        with pytest.raises(EDMFormatError) as e:
            parseHeader(data)
        assert not isinstance(e.value, EDMChecksumError)

    def test_no_end_record(self):
        """Reaching the end of the buffer without $L is fatal"""
        with pytest.raises(EDMFormatError, match='Unexpected end'):
            parseHeader(header_bytes('$U,N1', '$C,700,0,0,0,292'))

    def test_not_enough_values(self):
        """Short numeric records are a format error"""
        with pytest.raises(EDMFormatError, match='Not enough values'):
            parseHeader(header_bytes('$A,305,230', '$L,0'))

    def test_invalid_value(self):
        """Non numeric values are a format error"""
        with pytest.raises(EDMFormatError):
            parseShorts('$T,5,x3,21,23,2,2222*00', 6)

    def test_capacity(self):
        """More $D records than the flight table holds is fatal"""
        flights = [(i, 10) for i in range(config.MAX_FLIGHTS + 1)]
        data = bytearray(datfile.build_header(700, datfile.FLAGS_4CYL, 292, flights))
        with pytest.raises(EDMCapacityError):
            parseHeader(data)

    def test_capacity_limit_accepted(self):
        """Exactly MAX_FLIGHTS flights is fine"""
        flights = [(i, 10) for i in range(config.MAX_FLIGHTS)]
        header = parseHeader(bytearray(datfile.build_header(700, datfile.FLAGS_4CYL, 292, flights)))
        assert len(header.flights) == config.MAX_FLIGHTS

    def test_bad_checksum_digits(self):
        """Checksum must be hex"""
        with pytest.raises(EDMFormatError):
            checkHeaderChecksum('$L,0*ZZ')

    @pytest.mark.parametrize('digits', ['0x', '-1', ' 7F', '7F ', 'F', '07F'])
    def test_checksum_exactly_two_hex_digits(self, digits):
        """Anything but two hex digits after the star is rejected"""
        with pytest.raises(EDMFormatError, match='format error'):
            checkHeaderChecksum('$L,0*' + digits)

    def test_checksum_digits_either_case(self):
        """Lower case hex digits are accepted"""
        checkHeaderChecksum('$L, 49*4d')

    def test_trailing_values_ignored(self):
        """Values past the expected count don't have to be numbers"""
        assert parseShorts('$L, 49,*00', 1) == [49]
        assert parseShorts('$A,305,230,500,415,60,1650,230,90,x,7*00', 8) == [305, 230, 500, 415, 60, 1650, 230, 90, 7]

    def test_trailing_empty_value_in_header(self):
        """A trailing comma in a record is accepted"""
        header = parseHeader(header_bytes('$C, 700,63741, 6193, 1552, 292,', '$L, 49,'))
        assert header.config.firmwareVersion == 292
        assert header.config.extra == ()

    def test_no_test_named_helpers(self):
        """The header module exports no names pytest would collect"""
        assert not [name for name in dir(header_module) if name.startswith('test')]


class TestUnknownRecords:
    """Test records which aren't decoded"""

    def test_unknown_record_skipped(self, caplog):
        """Unknown records are logged and kept for display"""
        with caplog.at_level(logging.INFO):
            header = parseHeader(header_bytes('$C,700,0,0,0,292', '$P, 2', '$L,0'))
        assert header.other['P'] == '2'
        assert 'Unrecognized header record' in caplog.text


class TestVersionPatch:
    """Test the firmware version downgrade of the $C record"""

    def test_new_version_patched(self):
        """New firmware version is replaced and the checksum recomputed"""
        data = bytearray(datfile.build_header(830, datfile.FLAGS_4CYL, 412, []))
        header = parseHeader(data)

        assert header.scheme.isNew
        assert header.config.firmwareVersion == 412
        assert b',299*' in data
        assert b',412*' not in data

        # the patched header is still valid and now looks old
        again = parseHeader(data)
        assert again.config.firmwareVersion == 299
        assert not again.scheme.isNew

    def test_twin_version_patched(self):
        """EDM-760 uses its own version label"""
        data = bytearray(datfile.build_header(760, 0x180C, 150, []))
        parseHeader(data)
        assert b',139*' in data

    def test_only_version_changes(self):
        """Nothing but the version and checksum characters change"""
        original = datfile.build_header(830, datfile.FLAGS_4CYL, 412, [(1, 10)])
        data = bytearray(original)
        parseHeader(data)
        diff = [i for i in range(len(data)) if data[i] != original[i]]
        assert len(diff) <= 5
        assert len(data) == len(original)

    def test_unexpected_version_format(self, caplog):
        """A version which is not three characters is left alone"""
        data = header_bytes('$C,700,0,0,0,1000', '$L,0')
        original = bytes(data)
        with caplog.at_level(logging.WARNING):
            header = parseHeader(data)
        assert header.scheme.isNew
        assert bytes(data) == original
        assert 'Unable to change the firmware version' in caplog.text
