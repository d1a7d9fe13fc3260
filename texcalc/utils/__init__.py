"""
texcalc.utils

通用工具：日志 `logger`
"""
