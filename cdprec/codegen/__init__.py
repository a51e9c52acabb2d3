"""
codegen パッケージ — 記録アクションからのスクリプト生成

主な機能:
  - ScriptCompiler: Gherkin シナリオとステップ定義モジュールを生成
  - ScriptWriter: 生成結果とアクショントレースのファイル出力
  - resolve_selector: セレクタ種別から Playwright セレクタへの変換
"""

from __future__ import annotations

from .compiler import CompiledScript, ScriptCompiler
from .naming import clean_feature_name, sanitize_feature_name, timestamped_feature_name
from .selectors import UnsupportedSelectorError, resolve_selector
from .writer import GeneratedFiles, ScriptWriter, load_trace

__all__ = [
    "CompiledScript",
    "GeneratedFiles",
    "ScriptCompiler",
    "ScriptWriter",
    "UnsupportedSelectorError",
    "clean_feature_name",
    "load_trace",
    "resolve_selector",
    "sanitize_feature_name",
    "timestamped_feature_name",
]
