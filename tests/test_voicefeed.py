"""Tests for the voicefeed command line."""

from __future__ import annotations

import json
import logging
from textwrap import dedent
from typing import TYPE_CHECKING

import pytest

import voicefeed
from core.trans.interface import EngineAttributes, Result, TransInterface

if TYPE_CHECKING:
    from pathlib import Path


class EchoEngine(TransInterface):
    @property
    def is_available(self) -> bool:
        return True

    @staticmethod
    def fetch_engine_name() -> str:
        return ""

    def initialize(self, config) -> None:
        _ = config
        self.engine_attributes = EngineAttributes(name="echo")

    async def translation(self, content: str, tgt_lang: str, src_lang: str | None = None) -> Result:
        _ = src_lang
        return Result(text=f"[{tgt_lang}] {content}")

    async def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def isolate_cli(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(TransInterface, "registered", {"echo": EchoEngine})
    monkeypatch.setattr(voicefeed, "setup_logging", lambda config: logging.getLogger("voicefeed-test"))


def _write_ini(tmp_path: Path) -> Path:
    ini_path: Path = tmp_path / "voicefeed.ini"
    ini_path.write_text(
        dedent(
            """
            [TRANSLATION]
            ENGINE = ["echo"]
            DEFAULT_TARGET_LANGUAGE = "en"
            """
        ),
        encoding="utf-8",
    )
    return ini_path


async def test_say_appends_and_prints_translated_feed(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ini_path: Path = _write_ini(tmp_path)
    messages_path: Path = tmp_path / "feed.json"

    status: int = await voicefeed.main(
        ["--config", str(ini_path), "--messages", str(messages_path), "--target", "ha", "--say", "Amina", "Hello", "en"]
    )

    assert status == 0
    out: str = capsys.readouterr().out
    assert "Feed (Hausa), 1 messages" in out
    assert "Amina" in out
    assert "[en]  [ha] Hello  (Translated to Hausa)" in out
    documents = json.loads(messages_path.read_text(encoding="utf-8"))
    assert documents[0]["transcription"] == "Hello"


async def test_same_language_feed_is_printed_untranslated(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ini_path: Path = _write_ini(tmp_path)
    messages_path: Path = tmp_path / "feed.json"

    await voicefeed.main(["--config", str(ini_path), "--messages", str(messages_path), "--say", "", "Hello", "en"])
    await voicefeed.main(["--config", str(ini_path), "--messages", str(messages_path), "--say", "Tendai", "Hi", "en"])

    out: str = capsys.readouterr().out
    assert "[en]  Hi" in out
    assert "Translated to" not in out


async def test_missing_config_returns_error_status(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    status: int = await voicefeed.main(["--config", str(tmp_path / "missing.ini")])

    assert status == 1
    assert "Failed to load configuration file" in capsys.readouterr().err


async def test_unsupported_target_is_accepted(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    ini_path: Path = _write_ini(tmp_path)
    messages_path: Path = tmp_path / "feed.json"

    status: int = await voicefeed.main(
        ["--config", str(ini_path), "--messages", str(messages_path), "--target", "fr", "--say", "Amina", "Hello", "en"]
    )

    assert status == 0
    captured = capsys.readouterr()
    assert "Failed to load configuration file" not in captured.err
    assert "Feed (fr), 1 messages" in captured.out
    assert "[en]  [fr] Hello  (Translated to fr)" in captured.out
