"""
命名ヘルパー — フィーチャー名のサニタイズとファイル名の導出
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Optional

# ファイル名に使えない文字（Windows 基準）と制御文字
_INVALID_CHARS = re.escape('<>:"/\\|?*') + r"\x00-\x1f"
_INVALID_PATTERN = re.compile(rf"([{_INVALID_CHARS}]*\.+$)|([{_INVALID_CHARS}]+)")


def clean_feature_name(name: Optional[str]) -> Optional[str]:
    """フィーチャー名をファイル名として安全な文字列に変換する。

    変換ルール:
      - 使用不可文字・末尾のドット → "_"
      - 前後の "_" と空白、末尾のドットを除去
      - 先頭が英字でも "_" でもない場合は "_" を付与
      - 連続する "_" は 1 つにまとめる

    Args:
        name: 入力されたフィーチャー名

    Returns:
        サニタイズ済みのフィーチャー名。空・空白のみ、または何も残らない場合は None
    """
    if name is None or not name.strip():
        return None

    sanitized = _INVALID_PATTERN.sub("_", name)
    sanitized = sanitized.strip("_ ")
    # 除去後に末尾へ残ったドットも取り除く
    while sanitized.endswith("."):
        sanitized = sanitized.rstrip(".").strip("_ ")

    if not sanitized:
        return None

    if not (sanitized[0].isalpha() or sanitized[0] == "_"):
        sanitized = "_" + sanitized

    return re.sub(r"_+", "_", sanitized)


def sanitize_feature_name(name: Optional[str]) -> str:
    """フィーチャー名をサニタイズし、使えない場合は既定名を返す。

    空・空白のみ → "InvalidFeatureName"、何も残らない場合 → "SanitizedFeatureName"。
    """
    cleaned = clean_feature_name(name)
    if cleaned is not None:
        return cleaned
    if name is None or not name.strip():
        return "InvalidFeatureName"
    return "SanitizedFeatureName"


def timestamped_feature_name(now: Optional[datetime] = None) -> str:
    """`Feature_YYYYmmddHHMMSS` 形式の既定フィーチャー名を返す。"""
    now = now or datetime.now()
    return f"Feature_{now:%Y%m%d%H%M%S}"


def feature_file_name(feature_name: str) -> str:
    """シナリオファイル名（`<Feature>.feature`）を返す。"""
    return f"{feature_name}.feature"


def steps_module_name(feature_name: str) -> str:
    """pytest が収集できるステップ定義モジュール名を返す。

    例: "Login Flow" → "test_login_flow_steps.py"
    """
    slug = re.sub(r"\W+", "_", feature_name).strip("_").lower() or "feature"
    return f"test_{slug}_steps.py"


def trace_file_name(feature_name: str) -> str:
    """アクショントレース JSON のファイル名を返す。"""
    return f"{feature_name}.actions.json"
