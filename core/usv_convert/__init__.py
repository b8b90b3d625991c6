# core/usv_convert/__init__.py

"""
USV Convert API core package.

- errors.py : 変換エラーの例外階層
- models.py : Pydantic モデル定義
- service.py: メイン処理（CSV パーサ + USV コーデック + 統計）
"""
