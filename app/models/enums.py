"""
Enums for sports, match lifecycle and scoring events
"""

import enum


class Sport(str, enum.Enum):
    """Sports a match can be scheduled for"""
    CRICKET = "CRICKET"
    FOOTBALL = "FOOTBALL"
    BASKETBALL = "BASKETBALL"
    BADMINTON = "BADMINTON"
    TABLE_TENNIS = "TABLE_TENNIS"
    VOLLEYBALL = "VOLLEYBALL"
    CHESS = "CHESS"
    KHOKHO = "KHOKHO"
    KABADDI = "KABADDI"


class SportFamily(str, enum.Enum):
    """Rule module a sport is scored with"""
    CRICKET = "cricket"
    SET = "set"
    GOAL = "goal"
    SIMPLE = "simple"


SPORT_FAMILIES = {
    Sport.CRICKET: SportFamily.CRICKET,
    Sport.BADMINTON: SportFamily.SET,
    Sport.TABLE_TENNIS: SportFamily.SET,
    Sport.VOLLEYBALL: SportFamily.SET,
    Sport.FOOTBALL: SportFamily.GOAL,
    Sport.BASKETBALL: SportFamily.GOAL,
    Sport.KHOKHO: SportFamily.GOAL,
    Sport.KABADDI: SportFamily.GOAL,
    Sport.CHESS: SportFamily.SIMPLE,
}


class MatchStatus(str, enum.Enum):
    """Match status enum"""
    SCHEDULED = "SCHEDULED"
    LIVE = "LIVE"
    HALF_TIME = "HALF_TIME"
    FULL_TIME = "FULL_TIME"
    PENALTIES = "PENALTIES"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


TERMINAL_STATUSES = frozenset({MatchStatus.COMPLETED, MatchStatus.CANCELLED})


class MatchCategory(str, enum.Enum):
    REGULAR = "REGULAR"
    GROUP_STAGE = "GROUP_STAGE"
    QUARTER_FINAL = "QUARTER_FINAL"
    SEMIFINAL = "SEMIFINAL"
    FINAL = "FINAL"


class Side(str, enum.Enum):
    """Team slot within a match"""
    A = "A"
    B = "B"

    @property
    def other(self) -> "Side":
        return Side.B if self is Side.A else Side.A


class ResultType(str, enum.Enum):
    """How a completed match was decided"""
    CHECKMATE = "CHECKMATE"
    RESIGNATION = "RESIGNATION"
    STALEMATE = "STALEMATE"
    TIMEOUT = "TIMEOUT"
    DRAW = "DRAW"
    TIE = "TIE"
    RUNS = "RUNS"
    TARGET_ACHIEVED = "TARGET_ACHIEVED"
    SETS = "SETS"
    SCORE = "SCORE"
    PENALTIES = "PENALTIES"
    ABANDONED = "ABANDONED"


DRAWN_RESULTS = frozenset({ResultType.DRAW, ResultType.STALEMATE, ResultType.TIE})


class ExtrasType(str, enum.Enum):
    WIDE = "WIDE"
    NO_BALL = "NO_BALL"
    BYE = "BYE"
    LEG_BYE = "LEG_BYE"


class InningsClosure(str, enum.Enum):
    ALL_OUT = "ALL_OUT"
    OVERS_COMPLETED = "OVERS_COMPLETED"
    DECLARED = "DECLARED"
    TARGET_ACHIEVED = "TARGET_ACHIEVED"


class CardType(str, enum.Enum):
    YELLOW_CARD = "YELLOW_CARD"
    RED_CARD = "RED_CARD"
    PENALTY = "PENALTY"
    FOUL = "FOUL"
    WARNING = "WARNING"
    TECHNICAL = "TECHNICAL"
    OTHER = "OTHER"


class ScoreType(str, enum.Enum):
    GOAL = "GOAL"
    PENALTY = "PENALTY"
    FREE_THROW = "FREE_THROW"
    TWO_POINTER = "TWO_POINTER"
    THREE_POINTER = "THREE_POINTER"
    POINT = "POINT"


class ServiceRule(str, enum.Enum):
    """How service passes between sides in set sports"""
    RALLY = "RALLY"          # point winner serves next
    ALTERNATE = "ALTERNATE"  # serve passes every N points


class ShootoutStatus(str, enum.Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
