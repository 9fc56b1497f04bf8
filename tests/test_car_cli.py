import hashlib
import json

import pytest

from car_cli import main
from car_library import verify_car
from cid_utils import RAW_CODEC, cid_from_digest


def test_pack_writes_car_next_to_input(tmp_path, capsys):
    src = tmp_path / "photo.jpg"
    src.write_bytes(b"not really a jpeg")

    assert main(["--json", "pack", str(src)]) == 0

    output = json.loads(capsys.readouterr().out)
    car_path = tmp_path / "photo.jpg.car"
    assert output["output_path"] == str(car_path)
    assert output["content_cid"] == cid_from_digest(hashlib.sha256(b"not really a jpeg").digest(), RAW_CODEC)
    assert verify_car(car_path).content_cid == output["content_cid"]


def test_pack_with_options(tmp_path, capsys):
    src = tmp_path / "data.bin"
    src.write_bytes(b"\x00" * 10)
    out = tmp_path / "custom.car"

    rc = main(["pack", str(src), "-o", str(out), "--content-codec", "0x70",
               "--car-codec", "514", "--header-encoding", "json"])

    assert rc == 0
    text = capsys.readouterr().out
    assert f"output_path: {out}" in text
    assert json.loads(verify_car(out).header_bytes)["version"] == 1


def test_cid_command(tmp_path, capsys):
    src = tmp_path / "hello.txt"
    src.write_bytes(b"hello")
    assert main(["cid", str(src)]) == 0
    expected = cid_from_digest(hashlib.sha256(b"hello").digest(), RAW_CODEC)
    assert f"cid: {expected}" in capsys.readouterr().out


def test_inspect_command(tmp_path, capsys):
    src = tmp_path / "hello.txt"
    src.write_bytes(b"hello")
    main(["pack", str(src)])
    capsys.readouterr()

    assert main(["--json", "inspect", str(tmp_path / "hello.txt.car")]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["payload_length"] == 5
    assert output["verified"] is True


def test_decode_cid_command(capsys):
    cid = cid_from_digest(hashlib.sha256(b"").digest(), RAW_CODEC)
    assert main(["decode-cid", cid]) == 0
    text = capsys.readouterr().out
    assert "version: 1" in text
    assert "codec: 0x55" in text
    assert "hash_code: 0x12" in text
    assert f"digest: {hashlib.sha256(b'').hexdigest()}" in text


def test_missing_input_exits_with_error(tmp_path, capsys):
    assert main(["pack", str(tmp_path / "missing.bin")]) == 1
    assert "Error:" in capsys.readouterr().err


def test_bad_cid_exits_with_error(capsys):
    assert main(["decode-cid", "not-a-cid"]) == 1
    assert "Error:" in capsys.readouterr().err


def test_bad_codec_is_a_usage_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["pack", str(tmp_path / "x"), "--content-codec", "raw"])
    assert excinfo.value.code == 2


def test_logs_go_to_stderr(tmp_path, capsys):
    src = tmp_path / "data.bin"
    src.write_bytes(b"log routing")

    assert main(["pack", str(src)]) == 0

    captured = capsys.readouterr()
    assert "IpfsCar" not in captured.out
    assert all(line.split(": ", 1)[0] in {"content_cid", "car_cid", "output_path", "content_length", "car_length"}
               for line in captured.out.splitlines())
    assert "Wrote CAR" in captured.err
