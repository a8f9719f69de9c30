"""Engine exceptions.

Rule modules raise these; process_move() turns them into ProcessResult
failures so nothing above the engine has to catch them.
"""


class GameEngineError(Exception):
    """Base class for rule violations raised by the engine."""

    code = "GAME_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class UnsupportedGameType(GameEngineError, ValueError):
    code = "UNSUPPORTED_GAME_TYPE"

    def __init__(self, game_type: object):
        super().__init__(f"Unsupported game type: {game_type}")
        self.game_type = game_type


class IllegalMove(GameEngineError):
    code = "ILLEGAL_MOVE"

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotYourTurn(GameEngineError):
    code = "NOT_YOUR_TURN"

    def __init__(self, player_id: str):
        super().__init__("It's not your turn")
        self.player_id = player_id


class InvalidPhase(GameEngineError):
    code = "INVALID_PHASE"

    def __init__(self, kind: str, phase: str, game_type: str):
        super().__init__(f"'{kind}' is not allowed in {game_type} during {phase}")
        self.kind = kind
        self.phase = phase
        self.game_type = game_type
