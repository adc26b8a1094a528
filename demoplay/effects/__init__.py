"""
演出モジュール

オーバーレイのジオメトリ計算と演出レンダラを提供する。
"""
