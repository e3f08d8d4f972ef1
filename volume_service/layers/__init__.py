"""
数据流分层架构
  Layer 1 – Acquisition  : 上游请求（共享 httpx 客户端 + 重试 / 指数退避）
  Layer 2 – Cache        : 单槽时效缓存 + 快照历史
  Layer 3 – Processing   : 数据清洗、币种换算、成交额排名
"""
