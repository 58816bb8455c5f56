"""
服務層

這個 package 包含純計算邏輯，不負責狀態轉換：
- PeriodService：期號編碼
- SlotService：時間格對齊
- OutcomeService：開獎號碼與顏色、大小分類
- HistoryService：狀態看板與歷史紀錄
- GradingService：注單結算的擴充點
"""
