"""
texcalc.core

核心模块：
- 尺寸与胶的定点运算 `units`
- 寄存器存储 `registers` 与宿主环境 `host`
- 表达式转换 `lexer`
- 单位默认层 `defaulting`
- 配置注册表 `config`
- 求值调度服务 `service` 与全局覆盖 `override`
"""
