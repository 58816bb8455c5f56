"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- Repository：Round 和 Bet 的儲存介面
- RoundManager：回合生命週期（建立、封盤、結算）
- BetManager：下注驗證與紀錄
- RoundScheduler：固定間隔輪詢，驅動所有軌道
"""
