"""blockrepo - 可分发代码块的构建与依赖解析"""

__version__ = "0.4.0"
