"""
服務層

這個 package 包含純粹的輔助邏輯，不碰資料庫、不負責狀態轉換：
- StorageService：檔案路徑、暫存檔、zip 驗證、原子 rename、刪檔
"""
