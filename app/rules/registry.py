"""
Closed dispatch table from sport to rule module
"""

from typing import Dict

from app.models.enums import SPORT_FAMILIES, Sport, SportFamily
from app.rules.base import SportRules
from app.rules.cricket import CricketRules
from app.rules.goals import GoalRules
from app.rules.sets import SetRulesModule
from app.rules.simple import SimpleRules

RULES_BY_FAMILY: Dict[SportFamily, SportRules] = {
    SportFamily.CRICKET: CricketRules(),
    SportFamily.SET: SetRulesModule(),
    SportFamily.GOAL: GoalRules(),
    SportFamily.SIMPLE: SimpleRules(),
}

RULES_BY_SPORT: Dict[Sport, SportRules] = {
    sport: RULES_BY_FAMILY[SPORT_FAMILIES[sport]] for sport in Sport
}


def check_coverage(table: Dict[Sport, SportRules]) -> None:
    """Every sport must map to a module that declares it"""
    for sport in Sport:
        rules = table.get(sport)
        if rules is None or sport not in rules.sports:
            handler = type(rules).__name__ if rules is not None else "nothing"
            raise RuntimeError(f"{sport.value} is not handled by {handler}")


check_coverage(RULES_BY_SPORT)


def rules_for(sport: Sport) -> SportRules:
    return RULES_BY_SPORT[sport]
