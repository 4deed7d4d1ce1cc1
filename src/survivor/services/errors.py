"""
Exceptions métier.

Les erreurs de validation (règles de choix) sont des ValueError remontées
telles quelles à l'appelant; les erreurs d'infrastructure (sqlalchemy.exc)
ne sont jamais interceptées ici.
"""
from enum import Enum


class Violation(str, Enum):
    TEAM_REUSE_EXCEEDED = "TeamReuseExceeded"
    OPPOSITION_REUSE_EXCEEDED = "OppositionReuseExceeded"
    DEADLINE_PASSED = "DeadlinePassed"
    TEAM_INACTIVE = "TeamInactive"


VIOLATION_MESSAGES = {
    Violation.TEAM_REUSE_EXCEEDED: "Équipe déjà choisie le nombre maximal de fois sur cette moitié de saison.",
    Violation.OPPOSITION_REUSE_EXCEEDED: "Adversaire déjà ciblé le nombre maximal de fois sur cette moitié de saison.",
    Violation.DEADLINE_PASSED: "La date limite de la journée est dépassée.",
    Violation.TEAM_INACTIVE: "Cette équipe n'est plus sélectionnable.",
}


class SurvivorError(Exception):
    pass


class NotFoundError(SurvivorError, LookupError):
    pass


class SeasonNotFound(NotFoundError):
    def __init__(self, season_id: str):
        super().__init__(f"Saison {season_id} introuvable.")
        self.season_id = season_id


class GameweekNotFound(NotFoundError):
    def __init__(self, season_id: str, week_number: int):
        super().__init__(f"Journée {season_id}-{week_number} introuvable.")
        self.season_id = season_id
        self.week_number = week_number


class TeamNotFound(NotFoundError):
    def __init__(self, team_id: int):
        super().__init__(f"Équipe {team_id} introuvable.")
        self.team_id = team_id


class FixtureNotFound(NotFoundError):
    def __init__(self, fixture_id: int):
        super().__init__(f"Match {fixture_id} introuvable.")
        self.fixture_id = fixture_id


class PickNotFound(NotFoundError):
    def __init__(self, pick_id: int):
        super().__init__(f"Choix {pick_id} introuvable.")
        self.pick_id = pick_id


class PickRuleViolation(SurvivorError, ValueError):
    def __init__(self, violation: Violation):
        super().__init__(VIOLATION_MESSAGES[violation])
        self.violation = violation


class DuplicatePickError(SurvivorError, ValueError):
    pass


class NotApprovedError(SurvivorError, PermissionError):
    pass


class UserEliminatedError(SurvivorError, ValueError):
    pass


class GameweekStateError(SurvivorError):
    """Journée dans un état incompatible (verrouillée, date limite non passée, déjà traitée)."""
