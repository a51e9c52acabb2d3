"""
cdprec — DevTools プロトコルによるブラウザ操作レコーダー

ブラウザ上のユーザー操作を記録し、Gherkin シナリオと
pytest-bdd ステップ定義モジュールを生成する。

パッケージ構成:
  - recorder: アクションモデル、ActionLog、EventNormalizer、RecorderEngine
  - browser: Playwright 経由の DevTools セッションとブラウザ起動
  - codegen: シナリオ・ステップ定義の生成とファイル出力
"""

__version__ = "0.1.0"
