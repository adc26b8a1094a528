"""
demoplay — 宣言的スクリプトからブラウザ上の製品デモを再生・録画するツール
"""

__version__ = "0.1.0"
