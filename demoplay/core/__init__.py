"""
コアモジュール

実行設定、待機・リトライ、操作チャネル、再生エンジンを提供する。
"""
