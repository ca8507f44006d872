"""Tests for the command line front end."""

import pytest

import main
from encoder import encode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("QR_MAX_PAYLOAD_SIZE", "QR_ERROR_CORRECTION", "QR_BOX_SIZE", "QR_OUTPUT_DIR"):
        monkeypatch.delenv(name, raising=False)


def test_units_command(tmp_path, capsys):
    src = tmp_path / "t.txt"
    src.write_bytes(b"ABCDE")
    assert main.main(["units", "--file", str(src), "--chunk-size", "2"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out == encode(b"ABCDE", "t.txt", max_payload_size=2)


def test_units_command_with_name(tmp_path, capsys):
    src = tmp_path / "t.txt"
    src.write_bytes(b"ABCDE")
    main.main(["units", "--file", str(src), "--name", "other.txt"])
    assert capsys.readouterr().out.splitlines()[0] == "HEADER:other.txt:5:1"


def test_units_rejects_bad_name(tmp_path, capsys):
    src = tmp_path / "t.txt"
    src.write_bytes(b"ABCDE")
    assert main.main(["units", "--file", str(src), "--name", "a:b"]) == 1
    assert "must not contain" in capsys.readouterr().err


def test_units_rejects_zero_chunk_size(tmp_path, capsys):
    src = tmp_path / "t.txt"
    src.write_bytes(b"ABCDE")
    assert main.main(["units", "--file", str(src), "--chunk-size", "0"]) == 1
    assert "positive" in capsys.readouterr().err


def test_missing_file(tmp_path, capsys):
    assert main.main(["units", "--file", str(tmp_path / "nope.bin")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_encode_writes_header_first(tmp_path):
    src = tmp_path / "data.bin"
    src.write_bytes(bytes(range(50)))
    out_dir = tmp_path / "codes"
    paths = main.encode_file(src, out_dir, chunk_size=20)
    assert [p.name for p in paths] == ["data.bin-000.png", "data.bin-001.png", "data.bin-002.png", "data.bin-003.png"]
    assert all(p.exists() for p in paths)


def test_encode_decode_round_trip(tmp_path, capsys):
    pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)
    src = tmp_path / "notes.txt"
    payload = b"air-gapped transfer " * 10
    src.write_bytes(payload)
    codes = tmp_path / "codes"
    received = tmp_path / "received"

    assert main.main(["encode", "--file", str(src), "--output", str(codes), "--chunk-size", "40"]) == 0
    assert main.main(["decode", "--input", str(codes), "--output", str(received)]) == 0
    assert (received / "notes.txt").read_bytes() == payload
    assert "Reconstructed" in capsys.readouterr().out


def test_decode_incomplete(tmp_path, capsys):
    pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)
    src = tmp_path / "notes.txt"
    src.write_bytes(b"0123456789" * 5)
    codes = tmp_path / "codes"
    paths = main.encode_file(src, codes, chunk_size=10)
    paths[2].unlink()

    assert main.main(["decode", "--input", str(codes), "--output", str(tmp_path / "out")]) == 1
    assert "missing [2]" in capsys.readouterr().err
    assert not (tmp_path / "out").exists()


def test_decode_without_header(tmp_path, capsys):
    pytest.importorskip("pyzbar.pyzbar", exc_type=ImportError)
    src = tmp_path / "notes.txt"
    src.write_bytes(b"0123456789")
    codes = tmp_path / "codes"
    paths = main.encode_file(src, codes, chunk_size=5)
    paths[0].unlink()

    assert main.main(["decode", "--input", str(codes), "--output", str(tmp_path / "out")]) == 1
    err = capsys.readouterr().err
    assert "Header not scanned yet." in err
    assert "no header QR code found" in err


def test_decode_header_photographed_last(tmp_path, monkeypatch, capsys):
    units = encode(b"ABCDE", "t.txt", max_payload_size=2)
    photos = tmp_path / "photos"
    photos.mkdir()
    by_name = {}
    for i, unit in enumerate(units[1:] + units[:1], start=1):
        name = f"IMG_{i:04d}.png"
        (photos / name).write_bytes(b"")
        by_name[name] = [unit]
    monkeypatch.setattr(main, "scan_file", lambda path: by_name[path.name])

    out_path = main.decode_images(photos, tmp_path / "out")
    assert out_path == tmp_path / "out" / "t.txt"
    assert out_path.read_bytes() == b"ABCDE"
    assert "Header not scanned yet." not in capsys.readouterr().err


def test_decode_duplicate_photos(tmp_path, monkeypatch):
    units = encode(b"ABCDE", "t.txt", max_payload_size=2)
    photos = tmp_path / "photos"
    photos.mkdir()
    by_name = {}
    for i, unit in enumerate([units[2], units[2], units[1], units[0], units[3]], start=1):
        name = f"IMG_{i:04d}.jpg"
        (photos / name).write_bytes(b"")
        by_name[name] = [unit]
    monkeypatch.setattr(main, "scan_file", lambda path: by_name[path.name])

    assert main.decode_images(photos, tmp_path / "out").read_bytes() == b"ABCDE"
