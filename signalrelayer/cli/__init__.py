"""
命令行模块
CLI module.
"""
