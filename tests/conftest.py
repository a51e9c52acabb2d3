"""
テスト共通フィクスチャ

全テストモジュールで共有する ActionLog / EventNormalizer / 設定と、
ページ側スクリプトが送るペイロードの生成器を提供する。
"""

from __future__ import annotations

import itertools
import json
from pathlib import Path
from typing import Callable, Optional

import pytest

from cdprec.config import RecorderConfig
from cdprec.recorder.action_log import ActionLog
from cdprec.recorder.normalizer import EventNormalizer


# ---------------------------------------------------------------------------
# pytest フィクスチャ
# ---------------------------------------------------------------------------

@pytest.fixture
def action_log() -> ActionLog:
    """空の ActionLog。"""
    return ActionLog("TestFeature")


@pytest.fixture
def normalizer(action_log: ActionLog) -> EventNormalizer:
    """記録中（ON）の EventNormalizer。

    タイムスタンプは 1, 2, 3, ... と単調増加する。
    """
    counter = itertools.count(1)
    n = EventNormalizer(action_log, clock=lambda: float(next(counter)))
    n.start()
    return n


@pytest.fixture
def recorder_config(tmp_path: Path) -> RecorderConfig:
    """出力先を一時ディレクトリにした RecorderConfig。"""
    return RecorderConfig(output_dir=str(tmp_path / "out"))


@pytest.fixture
def make_payload() -> Callable[..., str]:
    """ページ側スクリプトが送る JSON ペイロードを生成する関数。

    使用例::

        make_payload("change", selector="Name", selector_value="q", value="abc",
                     tag_name="INPUT", element_type="text")
    """

    def _make(
        gesture: str = "click",
        selector: Optional[str] = "Id",
        selector_value: Optional[str] = "submit",
        value: Optional[str] = None,
        tag_name: Optional[str] = "BUTTON",
        element_type: Optional[str] = "submit",
    ) -> str:
        return json.dumps({
            "type": gesture,
            "selector": selector,
            "selectorValue": selector_value,
            "value": value,
            "tagName": tag_name,
            "elementType": element_type,
        })

    return _make
