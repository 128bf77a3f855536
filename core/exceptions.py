"""
自定義異常類別

集中管理所有業務邏輯異常，方便 API 層統一處理

分類：
- NotFound：引用的 Game / Round / Turn / Player / Artifact / Robot 不存在
- InvalidOrder：違反回合順序（order 必須是 1..N 不中斷）
- InvalidParam：參數錯誤（例如上傳內容為空）
- NotAZip：上傳的檔案不是合法的 zip
- DuplicatedKey：違反唯一性限制
"""


class GameRepositoryException(Exception):
    """所有業務異常的基類"""
    pass


# ============ Not Found ============

class NotFound(GameRepositoryException):
    """資源不存在"""
    pass


class GameNotFound(NotFound):
    """遊戲不存在"""
    def __init__(self, game_id):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class RoundNotFound(NotFound):
    """回合不存在"""
    def __init__(self, round_id):
        self.round_id = round_id
        super().__init__(f"Round {round_id} not found")


class TurnNotFound(NotFound):
    """Turn 不存在"""
    def __init__(self, turn_id):
        self.turn_id = turn_id
        super().__init__(f"Turn {turn_id} not found")


class PlayerNotFound(NotFound):
    """玩家不存在"""
    def __init__(self, account_id):
        self.account_id = account_id
        super().__init__(f"Player {account_id} not found")


class ArtifactNotFound(NotFound):
    """Turn 沒有上傳過檔案，或檔案已不在磁碟上"""
    def __init__(self, turn_id):
        self.turn_id = turn_id
        super().__init__(f"Artifact for turn {turn_id} not found")


class RobotNotFound(NotFound):
    """沒有符合條件的機器人"""
    def __init__(self, test_class_id, difficulty):
        self.test_class_id = test_class_id
        self.difficulty = difficulty
        super().__init__(f"No robot for class {test_class_id} with difficulty {difficulty}")


# ============ Round 順序 ============

class InvalidOrder(GameRepositoryException):
    """回合順序不合法"""
    def __init__(self, round_id, order, expected):
        self.round_id = round_id
        self.order = order
        self.expected = expected
        super().__init__(
            f"Invalid order {order} for round {round_id}, expected {expected}"
        )


# ============ 參數錯誤 ============

class InvalidParam(GameRepositoryException):
    """參數不合法"""
    pass


class EmptyBody(InvalidParam):
    """上傳內容為空"""
    def __init__(self):
        super().__init__("body is empty")


class InvalidPlayerList(InvalidParam):
    """玩家列表中有不存在的帳號"""
    pass


# ============ 檔案 ============

class NotAZip(GameRepositoryException):
    """檔案不是合法的 zip"""
    def __init__(self):
        super().__init__("file is not a valid zip")


class PayloadTooLarge(GameRepositoryException):
    """上傳超過大小上限"""
    def __init__(self, limit):
        self.limit = limit
        super().__init__(f"allowed body size: {limit} bytes")


# ============ 唯一性 ============

class DuplicatedKey(GameRepositoryException):
    """資料已存在"""
    pass
