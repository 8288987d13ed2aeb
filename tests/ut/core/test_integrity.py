"""完整性校验单元测试"""

from __future__ import annotations

import hashlib
from pathlib import Path

import pytest

from depprep.core.dep.integrity import file_digest, verify
from depprep.core.models import IntegrityReference

DATA = b"hello depprep\n" * 1000


@pytest.fixture
def sample(tmp_path: Path) -> Path:
    p = tmp_path / "sample.bin"
    p.write_bytes(DATA)
    return p


class TestFileDigest:
    @pytest.mark.parametrize("algorithm", ["md5", "sha1", "sha256", "sha512"])
    def test_matches_hashlib(self, sample: Path, algorithm: str) -> None:
        assert file_digest(sample, algorithm) == hashlib.new(algorithm, DATA).hexdigest()

    def test_small_chunks_same_result(self, sample: Path) -> None:
        assert file_digest(sample, "sha256", chunk_size=7) == hashlib.sha256(DATA).hexdigest()

    def test_missing_file_returns_empty(self, tmp_path: Path) -> None:
        """读取失败不抛异常，返回永不匹配的空摘要"""
        assert file_digest(tmp_path / "nope", "sha256") == ""


class TestVerify:
    def test_none_means_exists(self, sample: Path, tmp_path: Path) -> None:
        assert verify(sample, IntegrityReference())
        assert not verify(tmp_path / "nope", IntegrityReference())

    def test_match(self, sample: Path) -> None:
        ref = IntegrityReference("sha256", hashlib.sha256(DATA).hexdigest())
        assert verify(sample, ref)

    def test_uppercase_digest_accepted(self, sample: Path) -> None:
        ref = IntegrityReference("md5", hashlib.md5(DATA).hexdigest().upper())
        assert verify(sample, ref)

    def test_mismatch(self, sample: Path) -> None:
        ref = IntegrityReference("sha1", hashlib.sha1(b"other").hexdigest())
        assert not verify(sample, ref)

    def test_missing_file_with_digest(self, tmp_path: Path) -> None:
        ref = IntegrityReference("sha512", hashlib.sha512(b"").hexdigest())
        assert not verify(tmp_path / "nope", ref)
