"""
交易所成交额排行服务
轮询多家交易所公开 REST 接口，按 24h 成交额排名，保留每小时排名快照，提供 HTTP 接口

架构分层：
  数据获取层 (Acquisition)  → 带重试/退避的上游请求 + 各交易所适配器
  缓存层     (Cache)        → 单槽时效缓存 + 快照历史
  处理层     (Processing)   → 数据清洗、币种换算、排名截断
  调度层     (Scheduler)    → 启动时及每小时整点刷新
"""

__version__ = "1.0.0"
