#!filepath: tests/base_test/test_filesystem.py
import pytest

from trialflow import fs


def test_ensure_dir_creates_nested(tmp_path):
    target = tmp_path / "a" / "b"
    assert fs.ensure_dir(target) == target
    assert target.is_dir()


def test_write_bytes_leaves_no_tmp(tmp_path):
    path = tmp_path / "out" / "data.bin"
    fs.write_bytes(path, b"hello")

    assert path.read_bytes() == b"hello"
    assert not fs.tmp_path_for(path).exists()


def test_write_bytes_overwrites(tmp_path):
    path = tmp_path / "data.bin"
    fs.write_bytes(path, b"old")
    fs.write_bytes(path, b"new")
    assert path.read_bytes() == b"new"


def test_failed_write_keeps_previous_file(tmp_path):
    path = tmp_path / "data.bin"
    fs.write_bytes(path, b"old")

    def broken(tmp):
        tmp.write_bytes(b"partial")
        raise OSError("disk full")

    with pytest.raises(OSError):
        fs.atomic_write(path, broken)

    assert path.read_bytes() == b"old"
    assert not fs.tmp_path_for(path).exists()
