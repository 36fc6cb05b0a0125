import logging

from roadweave.config.schema import GenerationConfig
from roadweave.logging import init_logging, level_from_cfg
from roadweave.logging_util import get_logger


def test_logger_config_json_format(monkeypatch, capsys):
    monkeypatch.delenv("ROADWEAVE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("ROADWEAVE_LOG_FORMAT", raising=False)
    logger = get_logger("rw.test.json", {"logging": {"level": "INFO", "format": "json"}})
    logger.info("hello %s", "world", extra={"extra": {"k": 1}})
    out = capsys.readouterr().out.strip()
    assert out.startswith("{") and '"k": 1' in out and '"hello world"' in out


def test_env_overrides_level(monkeypatch, capsys):
    monkeypatch.setenv("ROADWEAVE_LOG_LEVEL", "ERROR")
    monkeypatch.delenv("ROADWEAVE_LOG_FORMAT", raising=False)
    logger = get_logger("rw.test.env", {"logging": {"level": "DEBUG"}})
    logger.warning("quiet")
    logger.error("loud")
    out = capsys.readouterr().out
    assert "quiet" not in out and "[ERROR] rw.test.env: loud" in out


def test_level_from_cfg():
    assert level_from_cfg(GenerationConfig(log_level="debug")) == logging.DEBUG
    assert level_from_cfg({"log_level": "info"}) == logging.INFO
    assert level_from_cfg(None) == logging.WARNING


def test_init_logging_installs_one_handler():
    root = logging.getLogger()
    before, old_level = list(root.handlers), root.level
    try:
        init_logging("info")
        init_logging("debug")
        ours = [h for h in root.handlers if getattr(h, "_roadweave", False)]
        assert len(ours) == 1
        assert logging.getLogger("roadweave").level == logging.DEBUG
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
        root.setLevel(old_level)
        logging.getLogger("roadweave").setLevel(logging.NOTSET)
