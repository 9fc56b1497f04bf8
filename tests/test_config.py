import importlib

import config


def _reload_with(monkeypatch, **env):
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    return importlib.reload(config)


def test_defaults(monkeypatch):
    for key in ("CAR_CONTENT_CODEC", "CAR_CID_CODEC", "CAR_HEADER_ENCODING", "CAR_BUFFER_SIZE", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    try:
        cfg = importlib.reload(config)
        assert cfg.CAR_CONTENT_CODEC == 0x55
        assert cfg.CAR_CID_CODEC == 0x0202
        assert cfg.CAR_HEADER_ENCODING == "dag-cbor"
        assert cfg.CAR_BUFFER_SIZE == 8192
        assert cfg.LOG_LEVEL == "INFO"
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_hex_and_decimal_values(monkeypatch):
    try:
        cfg = _reload_with(monkeypatch, CAR_CONTENT_CODEC="0x70", CAR_CID_CODEC="514",
                           CAR_HEADER_ENCODING="JSON", CAR_BUFFER_SIZE="0x10000")
        assert cfg.CAR_CONTENT_CODEC == 0x70
        assert cfg.CAR_CID_CODEC == 0x0202
        assert cfg.CAR_HEADER_ENCODING == "json"
        assert cfg.CAR_BUFFER_SIZE == 65536
    finally:
        monkeypatch.undo()
        importlib.reload(config)


def test_invalid_values_fall_back(monkeypatch):
    try:
        cfg = _reload_with(monkeypatch, CAR_CONTENT_CODEC="raw", CAR_HEADER_ENCODING="protobuf",
                           CAR_BUFFER_SIZE="-5", LOG_LEVEL="chatty")
        assert cfg.CAR_CONTENT_CODEC == 0x55
        assert cfg.CAR_HEADER_ENCODING == "dag-cbor"
        assert cfg.CAR_BUFFER_SIZE == 8192
        assert cfg.LOG_LEVEL == "INFO"
    finally:
        monkeypatch.undo()
        importlib.reload(config)
