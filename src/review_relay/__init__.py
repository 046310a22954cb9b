# src/review_relay/__init__.py
"""
Review Relay：把版主审核结果实时通知给提交者的中继服务。
"""

__version__ = "0.1.0"
