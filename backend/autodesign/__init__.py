"""
AutoDesign 印刷生产系统 - 后端核心模块

模块结构：
- config/       运行期配置加载
- models/       数据模型定义
- imposition/   拼版计算（N-up 排版）
- worker/       任务轮询/派发/回报（Job Orchestrator）
- automation/   文档引擎内执行的自动化流程（图层替换/导出）
"""

__version__ = "0.1.0"
