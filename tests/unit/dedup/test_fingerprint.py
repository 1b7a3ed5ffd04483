"""
Unit tests for FingerprintExtractor and hash_file.
"""

import hashlib
from unittest.mock import patch

import pytest

from dupfinder.dedup.fingerprint import FingerprintExtractor, hash_file
from dupfinder.dedup.models import DetectionMethod, HashAlgorithm, ScanConfig


class TestHashFile:
    @pytest.mark.parametrize("algorithm", list(HashAlgorithm))
    def test_matches_hashlib(self, tmp_path, write_file, algorithm):
        content = b"some file content\n" * 1000
        path = write_file(tmp_path / "f.bin", content)

        assert hash_file(path, algorithm) == hashlib.new(algorithm.value, content).hexdigest()

    def test_chunking_does_not_change_digest(self, tmp_path, write_file):
        content = bytes(range(256)) * 300
        path = write_file(tmp_path / "f.bin", content)

        assert hash_file(path, chunk_size=7) == hash_file(path, chunk_size=65536)

    def test_empty_file(self, tmp_path, write_file):
        path = write_file(tmp_path / "empty", b"")
        assert hash_file(path) == hashlib.sha256(b"").hexdigest()


class TestExtract:
    def test_size_method(self, tmp_path, write_file):
        path = write_file(tmp_path / "a.txt", b"hello", mtime=1_600_000_000)
        record = FingerprintExtractor(DetectionMethod.size).extract(path)

        assert record.fingerprint == "5"
        assert record.size_bytes == 5
        assert record.mod_time == 1_600_000_000
        assert record.path == path

    def test_hash_method(self, tmp_path, write_file):
        path = write_file(tmp_path / "a.txt", b"hello")
        record = FingerprintExtractor(DetectionMethod.hash, HashAlgorithm.md5).extract(path)

        assert record.fingerprint == hashlib.md5(b"hello").hexdigest()

    def test_name_method_uses_base_name(self, tmp_path, write_file):
        path = write_file(tmp_path / "deep" / "dir" / "photo.jpg", b"x")
        record = FingerprintExtractor(DetectionMethod.name).extract(path)

        assert record.fingerprint == "photo.jpg"

    def test_vanished_file_returns_none(self, tmp_path):
        extractor = FingerprintExtractor(DetectionMethod.hash)
        assert extractor.extract(tmp_path / "gone.txt") is None

    def test_read_error_returns_none(self, tmp_path, write_file):
        path = write_file(tmp_path / "a.txt", b"hello")
        extractor = FingerprintExtractor(DetectionMethod.hash)

        with patch("dupfinder.dedup.fingerprint.hash_file", side_effect=PermissionError("denied")):
            assert extractor.extract(path) is None

    def test_from_config(self, tmp_path):
        config = ScanConfig(
            directories=[tmp_path],
            method=DetectionMethod.size,
            hash_algorithm=HashAlgorithm.sha1,
            chunk_size=1024,
        )
        extractor = FingerprintExtractor.from_config(config)

        assert extractor.method is DetectionMethod.size
        assert extractor.algorithm is HashAlgorithm.sha1
        assert extractor.chunk_size == 1024
