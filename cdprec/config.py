"""
レコーダー設定 — 設定ファイル・環境変数・CLI 引数からの読み込み

CLI 引数 > 環境変数 > 設定ファイル（cdprec.yaml）> デフォルト値 の
優先順位で適用される。

環境変数一覧:
  CDPREC_BINDING_NAME      : ページ側スクリプトとのバインディング名（デフォルト: sendActionToPython）
  CDPREC_OUTPUT_DIR        : 生成ファイルの出力先（デフォルト: .）
  CDPREC_HEADED            : ブラウザ表示モード（true/false, デフォルト: true）
  CDPREC_CHANNEL           : ブラウザチャンネル（chromium/chrome/msedge, デフォルト: chromium）
  CDPREC_VIEWPORT_WIDTH    : ビューポート幅（デフォルト: 1280）
  CDPREC_VIEWPORT_HEIGHT   : ビューポート高さ（デフォルト: 720）
  CDPREC_ELEMENT_TIMEOUT_MS: 生成ステップの要素待機時間（デフォルト: 10000）
  CDPREC_PROTOCOL_VERSIONS : 試行するプロトコルバージョン（カンマ区切り, デフォルト: 136,120,100）
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .codegen.steps_builder import DEFAULT_ELEMENT_TIMEOUT_MS
from .recorder.normalizer import DEFAULT_BINDING_NAME

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "cdprec.yaml"

# ---------------------------------------------------------------------------
# 環境変数キー定数
# ---------------------------------------------------------------------------

_ENV_BINDING_NAME = "CDPREC_BINDING_NAME"
_ENV_OUTPUT_DIR = "CDPREC_OUTPUT_DIR"
_ENV_HEADED = "CDPREC_HEADED"
_ENV_CHANNEL = "CDPREC_CHANNEL"
_ENV_VIEWPORT_WIDTH = "CDPREC_VIEWPORT_WIDTH"
_ENV_VIEWPORT_HEIGHT = "CDPREC_VIEWPORT_HEIGHT"
_ENV_ELEMENT_TIMEOUT_MS = "CDPREC_ELEMENT_TIMEOUT_MS"
_ENV_PROTOCOL_VERSIONS = "CDPREC_PROTOCOL_VERSIONS"

_CHANNELS = ("chromium", "chrome", "msedge")


# ---------------------------------------------------------------------------
# 設定データクラス
# ---------------------------------------------------------------------------

@dataclass
class RecorderConfig:
    """レコーダーの実行時設定。

    Attributes:
        binding_name: ページ側スクリプトとのバインディング名
        output_dir: 生成ファイルの出力先ディレクトリ
        headed: ブラウザ表示モード（True=表示, False=ヘッドレス）
        channel: ブラウザチャンネル
        viewport_width: ビューポート幅
        viewport_height: ビューポート高さ
        element_timeout_ms: 生成ステップの要素待機時間
        protocol_versions: ネゴシエーションで試行するバージョン（優先順）
    """

    binding_name: str = DEFAULT_BINDING_NAME
    output_dir: str = "."
    headed: bool = True
    channel: str = "chromium"
    viewport_width: int = 1280
    viewport_height: int = 720
    element_timeout_ms: int = DEFAULT_ELEMENT_TIMEOUT_MS
    protocol_versions: tuple[int, ...] = (136, 120, 100)


# ---------------------------------------------------------------------------
# 値の変換
# ---------------------------------------------------------------------------

def _parse_bool(value: str) -> bool:
    """文字列を bool に変換する。

    Args:
        value: "true", "1", "yes" → True、それ以外 → False

    Returns:
        変換結果
    """
    return value.lower() in ("true", "1", "yes")


def _parse_versions(value: Any) -> tuple[int, ...]:
    """カンマ区切り文字列または数値リストをバージョンタプルに変換する。

    Raises:
        ValueError: 数値に変換できない要素がある、または空の場合
    """
    if isinstance(value, str):
        items = [item.strip() for item in value.split(",") if item.strip()]
    elif isinstance(value, (list, tuple)):
        items = list(value)
    else:
        items = [value]
    versions = tuple(int(item) for item in items)
    if not versions:
        raise ValueError("プロトコルバージョンが空です")
    return versions


def parse_viewport(value: str) -> tuple[int, int]:
    """`WIDTHxHEIGHT` または `WIDTH,HEIGHT` 形式をタプルに変換する。

    Raises:
        ValueError: 形式が不正な場合
    """
    normalized = value.lower().replace(",", "x")
    w, h = normalized.split("x")
    return int(w), int(h)


# ---------------------------------------------------------------------------
# 設定ファイル
# ---------------------------------------------------------------------------

def load_config_file(path: Path) -> dict[str, Any]:
    """YAML 設定ファイルを読み込む。

    Args:
        path: 設定ファイルのパス

    Returns:
        設定値の辞書（ファイルが無い・空の場合は空辞書）

    Raises:
        ValueError: YAML 構文エラー、またはトップレベルがマッピングでない場合
    """
    path = Path(path)
    if not path.exists():
        return {}

    yaml = YAML(typ="safe")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f)
    except YAMLError as exc:
        raise ValueError(f"設定ファイルの YAML 構文エラー: {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"設定ファイルのトップレベルはマッピングである必要があります: {path}")
    return dict(data)


def _apply_mapping(config: RecorderConfig, values: Mapping[str, Any], source: str) -> None:
    """辞書の値を設定に適用する。不正な値は警告して無視する。"""
    known = {f.name for f in fields(RecorderConfig)}
    for key, value in values.items():
        if key not in known:
            logger.warning("%s の未知の設定キーを無視します: %s", source, key)
            continue
        try:
            if key == "protocol_versions":
                value = _parse_versions(value)
            elif key in ("viewport_width", "viewport_height", "element_timeout_ms"):
                value = int(value)
            elif key == "headed" and isinstance(value, str):
                value = _parse_bool(value)
            elif key == "channel" and value not in _CHANNELS:
                raise ValueError(f"未対応のチャンネルです: {value}")
            elif key in ("binding_name", "output_dir"):
                value = str(value)
        except (TypeError, ValueError) as exc:
            logger.warning("%s の %s の値が不正です: %r (%s)", source, key, value, exc)
            continue
        setattr(config, key, value)


# ---------------------------------------------------------------------------
# 環境変数
# ---------------------------------------------------------------------------

def load_config_from_env(
    config: Optional[RecorderConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RecorderConfig:
    """環境変数の値を設定に適用する。

    Args:
        config: ベースとなる設定（省略時はデフォルト値）
        environ: 環境変数の辞書（省略時は os.environ）

    Returns:
        環境変数が適用された設定
    """
    config = config or RecorderConfig()
    environ = os.environ if environ is None else environ

    mapping = {
        _ENV_BINDING_NAME: "binding_name",
        _ENV_OUTPUT_DIR: "output_dir",
        _ENV_HEADED: "headed",
        _ENV_CHANNEL: "channel",
        _ENV_VIEWPORT_WIDTH: "viewport_width",
        _ENV_VIEWPORT_HEIGHT: "viewport_height",
        _ENV_ELEMENT_TIMEOUT_MS: "element_timeout_ms",
        _ENV_PROTOCOL_VERSIONS: "protocol_versions",
    }
    values = {key: environ[env] for env, key in mapping.items() if env in environ}
    _apply_mapping(config, values, "環境変数")
    return config


def load_config(
    config_path: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> RecorderConfig:
    """設定ファイルと環境変数から RecorderConfig を生成する。

    Args:
        config_path: 設定ファイルのパス（省略時はカレントの cdprec.yaml）
        environ: 環境変数の辞書（省略時は os.environ）

    Returns:
        読み込んだ設定
    """
    config = RecorderConfig()
    path = Path(config_path) if config_path is not None else Path(CONFIG_FILE_NAME)
    _apply_mapping(config, load_config_file(path), str(path))
    load_config_from_env(config, environ)
    logger.debug("設定を読み込みました: %s", config)
    return config


def apply_cli_overrides(config: RecorderConfig, **overrides: Any) -> RecorderConfig:
    """CLI 引数を設定に適用する。None の値は上書きしない。

    Args:
        config: ベースとなる設定
        **overrides: 設定キーと値（viewport は "WxH" 文字列も可）

    Returns:
        CLI 引数が適用された設定
    """
    viewport = overrides.pop("viewport", None)
    if viewport is not None:
        try:
            config.viewport_width, config.viewport_height = parse_viewport(str(viewport))
        except ValueError:
            logger.warning("--viewport の形式が不正です: %s (WIDTHxHEIGHT)", viewport)

    values = {key: value for key, value in overrides.items() if value is not None}
    _apply_mapping(config, values, "CLI 引数")
    return config
