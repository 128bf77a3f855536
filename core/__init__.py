"""
核心業務邏輯層

這個 package 包含所有核心業務邏輯，包括：
- RoundManager：回合順序（order 永遠是 1..N）
- ArtifactManager：Turn 結果檔的上傳與下載
- Reclaimer：週期性回收孤兒檔案
- GameManager / TurnManager：Game 與 Turn 的生命週期
- Locks：並發控制工具
"""
