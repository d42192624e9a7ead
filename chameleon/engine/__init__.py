"""Game engine - lobby membership, phases, host duties, and role definitions."""

from .host import HostAuthority, TopicDecision
from .machine import Action, ClientView, Duty, DutyKind, LobbyStateMachine
from .phases import Screen
from .roles import Role, ROLES, RoleCard
from .tally import TallyResult, tally

__all__ = [
    "Action",
    "ClientView",
    "Duty",
    "DutyKind",
    "HostAuthority",
    "LobbyStateMachine",
    "Role",
    "ROLES",
    "RoleCard",
    "Screen",
    "TallyResult",
    "TopicDecision",
    "tally",
]
