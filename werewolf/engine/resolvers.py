"""Per-phase resolvers.

A resolver turns the actions buffered during a phase into an ordered list of
effects. Resolvers only read the snapshot they are given; the game applies
the effects afterwards.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional, Sequence

from .actions import ActionKind, SubmittedAction
from .effects import (
    Check,
    ClearNightKill,
    Effect,
    Eliminate,
    HunterTriggered,
    Kill,
    NoElimination,
    Poison,
    Protect,
    Save,
    SetLastProtected,
    SetNightKill,
    Shoot,
    Skip,
    UseAntidote,
    UsePoison,
)
from .roles import Camp, RoleType

if TYPE_CHECKING:
    from .config import GameConfig
    from .state import StateSnapshot


@dataclass
class VoteTally:
    """Outcome of a plurality vote."""
    winner: Optional[str] = None
    tied: bool = False
    counts: dict[str, int] = field(default_factory=dict)
    voters: dict[str, list[str]] = field(default_factory=dict)  # target -> voters
    max_votes: int = 0


def first_actions(
    actions: Sequence[SubmittedAction],
    kind: ActionKind,
    require_target: bool = False,
) -> list[SubmittedAction]:
    """Keep the first action of the given kind per player.

    With `require_target`, actions without a target are dropped before they
    can count as the player's action.
    """
    seen: set[str] = set()
    result = []
    for action in actions:
        if action.kind != kind or action.player_id in seen:
            continue
        if require_target and not action.target_id:
            continue
        seen.add(action.player_id)
        result.append(action)
    return result


def tally_votes(actions: Sequence[SubmittedAction], kind: ActionKind) -> VoteTally:
    """Count votes of one kind. Only a strict plurality produces a winner.

    Args:
        actions: Buffered actions of the phase.
        kind: Action kind that counts as a vote (VOTE or KILL).

    Returns:
        The tally. Any tie at the top, zero votes included, has no winner.
    """
    counts: Counter[str] = Counter()
    voters: dict[str, list[str]] = {}
    for action in first_actions(actions, kind):
        if not action.target_id:
            continue
        counts[action.target_id] += 1
        voters.setdefault(action.target_id, []).append(action.player_id)

    tally = VoteTally(counts=dict(counts), voters=voters)
    if not counts:
        tally.tied = True
        return tally

    top = counts.most_common(2)
    tally.max_votes = top[0][1]
    if len(top) > 1 and top[1][1] == top[0][1]:
        tally.tied = True
    else:
        tally.winner = top[0][0]
    return tally


def resolve_guard(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    effects: list[Effect] = []
    for action in first_actions(actions, ActionKind.PROTECT, require_target=True):
        guard = snapshot.player(action.player_id)
        if guard is None:
            continue
        protect = Protect(source_id=action.player_id, target_id=action.target_id)

        if not config.guard_can_repeat and action.target_id == guard.last_protected:
            effects.append(protect.cancel("cannot protect same target consecutively"))
            continue
        if not config.guard_can_protect_self and action.target_id == action.player_id:
            effects.append(protect.cancel("guard cannot protect self"))
            continue

        effects.append(SetLastProtected(source_id=action.player_id, target_id=action.target_id))
        effects.append(protect)
    return effects


def resolve_wolf(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    tally = tally_votes(actions, ActionKind.KILL)
    if tally.winner is None:
        return []

    # A guarded victim is absorbed silently; the witch must not learn of it
    if config.same_guard_kill_is_empty and snapshot.round_ctx.is_protected(tally.winner):
        return []

    return [SetNightKill(target_id=tally.winner)]


def _antidote_refusal(
    action: SubmittedAction,
    snapshot: StateSnapshot,
    config: GameConfig,
) -> Optional[str]:
    witch = snapshot.player(action.player_id)
    kill_target = snapshot.round_ctx.kill_target

    if witch is None or not witch.has_antidote:
        return "no antidote"
    if action.target_id == action.player_id and not config.witch_can_save_self:
        return "witch cannot save self"
    if not kill_target:
        return "no one is dying tonight"
    if action.target_id != kill_target:
        return "target is not dying"
    return None


def resolve_witch(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    effects: list[Effect] = []

    for action in first_actions(actions, ActionKind.ANTIDOTE, require_target=True):
        save = Save(source_id=action.player_id, target_id=action.target_id)
        refusal = _antidote_refusal(action, snapshot, config)
        if refusal is not None:
            effects.append(save.cancel(refusal))
            continue
        effects.append(UseAntidote(source_id=action.player_id, target_id=action.target_id))
        effects.append(ClearNightKill(source_id=action.player_id, target_id=action.target_id))
        effects.append(save)

    for action in first_actions(actions, ActionKind.POISON, require_target=True):
        witch = snapshot.player(action.player_id)
        if witch is None or not witch.has_poison:
            effects.append(
                Poison(source_id=action.player_id, target_id=action.target_id).cancel("no poison")
            )
            continue
        if action.target_id == action.player_id:
            effects.append(
                Poison(source_id=action.player_id, target_id=action.target_id)
                .cancel("witch cannot poison self")
            )
            continue
        # The death itself lands during night resolution
        effects.append(UsePoison(source_id=action.player_id, target_id=action.target_id))

    return effects


def resolve_seer(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    effects: list[Effect] = []
    for action in first_actions(actions, ActionKind.CHECK, require_target=True):
        target = snapshot.player(action.target_id)
        if target is None:
            continue
        effects.append(Check(
            source_id=action.player_id,
            target_id=action.target_id,
            camp=target.camp,
            is_good=target.camp == Camp.GOOD,
        ))
    return effects


def _death_with_trigger(death: Effect, snapshot: StateSnapshot) -> list[Effect]:
    victim = snapshot.player(death.target_id)
    if victim is not None and victim.role == RoleType.HUNTER:
        return [death, HunterTriggered(source_id=victim.player_id, target_id=victim.player_id)]
    return [death]


def resolve_night(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    """Apply the deaths deferred during the night."""
    effects: list[Effect] = []
    ctx = snapshot.round_ctx
    dead: set[str] = set()

    kill_target = ctx.kill_target
    if kill_target:
        victim = snapshot.player(kill_target)
        if config.same_guard_kill_is_empty and ctx.is_protected(kill_target):
            effects.append(ClearNightKill(target_id=kill_target))
        elif victim is not None and victim.alive:
            effects.extend(_death_with_trigger(Kill(target_id=kill_target), snapshot))
            dead.add(kill_target)

    for player_id in sorted(ctx.poisoned):
        victim = snapshot.player(player_id)
        if player_id in dead or victim is None or not victim.alive:
            continue
        effects.extend(_death_with_trigger(Poison(target_id=player_id), snapshot))
        dead.add(player_id)

    return effects


def resolve_hunter(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    effects: list[Effect] = []
    seen: set[str] = set()
    triggered = snapshot.round_ctx.triggered_hunter_id
    for action in actions:
        if action.player_id in seen or action.kind not in (ActionKind.SHOOT, ActionKind.SKIP):
            continue
        if triggered and action.player_id != triggered:
            continue
        # A shot at nobody doesn't use up the hunter's turn
        if action.kind == ActionKind.SHOOT and not action.target_id:
            continue
        seen.add(action.player_id)
        if action.kind == ActionKind.SHOOT:
            effects.append(Shoot(source_id=action.player_id, target_id=action.target_id))
        else:
            effects.append(Skip(source_id=action.player_id))
    return effects


def resolve_vote(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    tally = tally_votes(actions, ActionKind.VOTE)
    if tally.winner is None:
        result = "tie" if tally.counts else "no_votes"
        reason = "tie" if tally.counts else "no votes"
        return [NoElimination(result=result, tally=tally.counts).cancel(reason)]

    eliminate = Eliminate(
        target_id=tally.winner,
        votes=tally.max_votes,
        voters=list(tally.voters[tally.winner]),
        tally=tally.counts,
    )
    return _death_with_trigger(eliminate, snapshot)


def resolve_day(
    actions: Sequence[SubmittedAction],
    snapshot: StateSnapshot,
    config: GameConfig,
) -> list[Effect]:
    # Speeches don't change the state
    return []
