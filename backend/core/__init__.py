"""
Core Module - 函数服务核心模块

包含:
- config: 项目配置加载
- functions: 配置解析、环境组装、serve 编排
- sandbox: 沙箱容器生命周期、输出转发、取消监听
"""
