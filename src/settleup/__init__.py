"""SettleUp: общие расходы группы, балансы и синхронизация между участниками."""
