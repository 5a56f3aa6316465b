"""运维监控：端点健康监控与MongoDB备份管理"""

__version__ = "1.0.0"
