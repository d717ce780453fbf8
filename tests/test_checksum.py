"""
Unit tests for the checksum module
"""

import pytest

import config
from checksum import ChecksumScheme, calcNewChecksum, calcOldChecksum, findModel, headerChecksum


class TestAlgorithms:
    """Test the XOR and SUM checksums"""

    def test_old_checksum(self):
        """XOR of all bytes"""
        assert calcOldChecksum(b'\x01\x02\x04') == 0x07
        assert calcOldChecksum(b'\xff\xff') == 0
        assert calcOldChecksum(b'') == 0

    def test_new_checksum(self):
        """Negated 8 bit sum"""
        assert calcNewChecksum(b'\x01\x02\x03') == 250
        assert calcNewChecksum(b'\x80\x80') == 0
        assert calcNewChecksum(b'\xff') == 1

    def test_bytearray_input(self):
        """Checksums accept slices of the file buffer"""
        data = bytearray(b'\x10\x20\x30\x40')
        assert calcOldChecksum(data[1:3]) == 0x10
        assert calcNewChecksum(data[1:3]) == (-0x50) & 0xFF


class TestHeaderChecksum:
    """Test the header line checksum"""

    @pytest.mark.parametrize('line, expected', [
        ('$L, 49*4D', 0x4D),
        ('$D,  227, 3979*57', 0x57),
        ('$U,N12345_*59', 0x59),
    ])
    def test_known_lines(self, line, expected):
        """Checksum is computed between '$' and '*'"""
        assert headerChecksum(line) == expected
        assert int(line[line.rindex('*') + 1:], 16) == expected

    def test_interior_change_detected(self):
        """Changing any byte between '$' and '*' changes the checksum"""
        line = '$D,  227, 3979*57'
        for i in range(1, line.rindex('*')):
            mutated = line[:i] + chr(ord(line[i]) ^ 0x01) + line[i + 1:]
            assert headerChecksum(mutated) != 0x57


class TestChecksumScheme:
    """Test the firmware version based scheme selection"""

    def test_model_table(self):
        """EDM-760 has its own version stream"""
        assert findModel(760) == (140, '139')
        assert findModel(700) == config.checksum_default
        assert findModel(0) == (300, '299')

    @pytest.mark.parametrize('model, version, is_new', [
        (700, 292, False),
        (700, 299, False),
        (700, 300, True),
        (830, 412, True),
        (760, 139, False),
        (760, 140, True),
    ])
    def test_is_new(self, model, version, is_new):
        """The threshold decides which checksum is tried first"""
        assert ChecksumScheme(model, version).isNew == is_new

    @pytest.mark.parametrize('version', [292, 412])
    @pytest.mark.parametrize('data', [b'\x01\x02\x03', b'\x3c\x3c\x00\x12', b'\xf0' * 7])
    def test_accepts_either_algorithm(self, version, data):
        """A record is accepted iff one of the algorithms matches"""
        scheme = ChecksumScheme(700, version)
        valid = set([calcOldChecksum(data), calcNewChecksum(data)])
        for check in range(256):
            assert scheme.test(data, check) == (check in valid)

    def test_legacy(self):
        """The rewritten checksum is always the XOR one"""
        scheme = ChecksumScheme(830, 412)
        assert scheme.legacy(b'\x01\x02\x03') == 0
