"""Unit tests for the per-phase resolvers and the vote tally."""

from conftest import action

from werewolf.engine.actions import ActionKind
from werewolf.engine.effects import (
    EffectKind,
    HunterTriggered,
    Protect,
    SetLastProtected,
    SetNightKill,
    UseAntidote,
    UsePoison,
)
from werewolf.engine.phases import PhaseType
from werewolf.engine.resolvers import (
    resolve_day,
    resolve_guard,
    resolve_hunter,
    resolve_night,
    resolve_seer,
    resolve_vote,
    resolve_witch,
    resolve_wolf,
    tally_votes,
)
from werewolf.engine.roles import Camp


def kinds(effects):
    return [e.kind for e in effects]


class TestTallyVotes:
    """Test suite for tally_votes"""

    def test_strict_plurality_wins(self):
        """A unique maximum picks the winner"""
        tally = tally_votes([
            action("a", ActionKind.VOTE, "x"),
            action("b", ActionKind.VOTE, "x"),
            action("c", ActionKind.VOTE, "y"),
        ], ActionKind.VOTE)
        assert tally.winner == "x"
        assert not tally.tied
        assert tally.max_votes == 2
        assert tally.counts == {"x": 2, "y": 1}
        assert tally.voters["x"] == ["a", "b"]

    def test_tie_has_no_winner(self):
        """Equal top counts yield no winner"""
        tally = tally_votes([
            action("a", ActionKind.VOTE, "x"),
            action("b", ActionKind.VOTE, "y"),
        ], ActionKind.VOTE)
        assert tally.winner is None
        assert tally.tied

    def test_zero_votes_has_no_winner(self):
        """No votes at all is treated as a tie"""
        tally = tally_votes([], ActionKind.VOTE)
        assert tally.winner is None
        assert tally.tied
        assert tally.counts == {}

    def test_first_vote_per_voter_counts(self):
        """A voter's later votes are ignored"""
        tally = tally_votes([
            action("a", ActionKind.VOTE, "x"),
            action("a", ActionKind.VOTE, "y"),
            action("a", ActionKind.VOTE, "y"),
        ], ActionKind.VOTE)
        assert tally.winner == "x"
        assert tally.counts == {"x": 1}

    def test_other_kinds_and_empty_targets_ignored(self):
        """Only the requested kind with a target counts"""
        tally = tally_votes([
            action("a", ActionKind.KILL, "x"),
            action("b", ActionKind.VOTE, ""),
            action("c", ActionKind.VOTE, "y"),
        ], ActionKind.VOTE)
        assert tally.winner == "y"
        assert tally.counts == {"y": 1}


class TestResolveGuard:
    """Test suite for the guard resolver"""

    def test_protect_emits_last_protected_then_protect(self, config, make_snapshot):
        """A valid protect records the target then protects it"""
        effects = resolve_guard([action("guard", ActionKind.PROTECT, "v1")], make_snapshot(), config)
        assert kinds(effects) == [EffectKind.SET_LAST_PROTECTED, EffectKind.PROTECT]
        assert all(e.target_id == "v1" and e.source_id == "guard" for e in effects)
        assert not any(e.canceled for e in effects)

    def test_repeat_target_is_canceled(self, config, make_snapshot):
        """The same target two nights in a row is refused"""
        snapshot = make_snapshot(effects=[SetLastProtected(source_id="guard", target_id="v1")])
        effects = resolve_guard([action("guard", ActionKind.PROTECT, "v1")], snapshot, config)
        assert len(effects) == 1
        assert effects[0].kind == EffectKind.PROTECT
        assert effects[0].canceled
        assert effects[0].reason == "cannot protect same target consecutively"

    def test_repeat_allowed_by_rule(self, config, make_snapshot):
        """guard_can_repeat lifts the restriction"""
        snapshot = make_snapshot(effects=[SetLastProtected(source_id="guard", target_id="v1")])
        effects = resolve_guard(
            [action("guard", ActionKind.PROTECT, "v1")],
            snapshot,
            config.with_rules(guard_can_repeat=True),
        )
        assert kinds(effects) == [EffectKind.SET_LAST_PROTECTED, EffectKind.PROTECT]

    def test_self_protect_canceled_when_disallowed(self, config, make_snapshot):
        """Self protection is refused when the rule is off"""
        effects = resolve_guard(
            [action("guard", ActionKind.PROTECT, "guard")],
            make_snapshot(),
            config.with_rules(guard_can_protect_self=False),
        )
        assert len(effects) == 1
        assert effects[0].canceled
        assert effects[0].reason == "guard cannot protect self"

    def test_self_protect_allowed_by_default(self, config, make_snapshot):
        """Guards may protect themselves under the standard rules"""
        effects = resolve_guard([action("guard", ActionKind.PROTECT, "guard")], make_snapshot(), config)
        assert not any(e.canceled for e in effects)

    def test_only_first_protect_counts(self, config, make_snapshot):
        """Later protects by the same guard are dropped"""
        effects = resolve_guard([
            action("guard", ActionKind.PROTECT, "v1"),
            action("guard", ActionKind.PROTECT, "v2"),
        ], make_snapshot(), config)
        assert [e.target_id for e in effects] == ["v1", "v1"]

    def test_protect_without_target_ignored(self, config, make_snapshot):
        """A targetless protect neither protects nor clears the last target"""
        snapshot = make_snapshot(effects=[SetLastProtected(source_id="guard", target_id="v1")])
        assert resolve_guard([action("guard", ActionKind.PROTECT)], snapshot, config) == []

    def test_targetless_protect_does_not_shadow_later_one(self, config, make_snapshot):
        effects = resolve_guard([
            action("guard", ActionKind.PROTECT),
            action("guard", ActionKind.PROTECT, "v2"),
        ], make_snapshot(), config)
        assert kinds(effects) == [EffectKind.SET_LAST_PROTECTED, EffectKind.PROTECT]
        assert effects[1].target_id == "v2"


class TestResolveWolf:
    """Test suite for the wolf resolver"""

    def test_agreed_target_sets_night_kill(self, config, make_snapshot):
        """A unanimous pack sets the kill target"""
        effects = resolve_wolf([
            action("wolf1", ActionKind.KILL, "v1"),
            action("wolf2", ActionKind.KILL, "v1"),
        ], make_snapshot(PhaseType.NIGHT_WOLF), config)
        assert len(effects) == 1
        assert isinstance(effects[0], SetNightKill)
        assert effects[0].target_id == "v1"

    def test_split_vote_kills_nobody(self, config, make_snapshot):
        """Split votes produce nothing"""
        effects = resolve_wolf([
            action("wolf1", ActionKind.KILL, "v1"),
            action("wolf2", ActionKind.KILL, "v2"),
        ], make_snapshot(PhaseType.NIGHT_WOLF), config)
        assert effects == []

    def test_protected_target_absorbed(self, config, make_snapshot):
        """A guarded victim is silently absorbed"""
        snapshot = make_snapshot(PhaseType.NIGHT_WOLF, [Protect(source_id="guard", target_id="v1")])
        effects = resolve_wolf([action("wolf1", ActionKind.KILL, "v1")], snapshot, config)
        assert effects == []

    def test_protected_target_killed_when_rule_off(self, config, make_snapshot):
        """Without same_guard_kill_is_empty the kill goes through"""
        snapshot = make_snapshot(PhaseType.NIGHT_WOLF, [Protect(source_id="guard", target_id="v1")])
        effects = resolve_wolf(
            [action("wolf1", ActionKind.KILL, "v1")],
            snapshot,
            config.with_rules(same_guard_kill_is_empty=False),
        )
        assert kinds(effects) == [EffectKind.SET_NIGHT_KILL]


class TestResolveWitch:
    """Test suite for the witch resolver"""

    def test_antidote_on_kill_target(self, config, make_snapshot):
        """Saving the dying player uses the antidote and clears the kill"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="v1")])
        effects = resolve_witch([action("witch", ActionKind.ANTIDOTE, "v1")], snapshot, config)
        assert kinds(effects) == [EffectKind.USE_ANTIDOTE, EffectKind.CLEAR_NIGHT_KILL, EffectKind.SAVE]
        assert not any(e.canceled for e in effects)

    def test_antidote_without_kill_target(self, config, make_snapshot):
        """No one dying means the antidote is refused"""
        effects = resolve_witch(
            [action("witch", ActionKind.ANTIDOTE, "v1")],
            make_snapshot(PhaseType.NIGHT_WITCH),
            config,
        )
        assert len(effects) == 1
        assert effects[0].kind == EffectKind.SAVE
        assert effects[0].canceled
        assert effects[0].reason == "no one is dying tonight"

    def test_antidote_on_wrong_target(self, config, make_snapshot):
        """Saving someone who isn't dying is refused"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="v1")])
        effects = resolve_witch([action("witch", ActionKind.ANTIDOTE, "v2")], snapshot, config)
        assert [e.reason for e in effects] == ["target is not dying"]

    def test_antidote_self_save_disallowed(self, config, make_snapshot):
        """The witch may not save herself under the standard rules"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="witch")])
        effects = resolve_witch([action("witch", ActionKind.ANTIDOTE, "witch")], snapshot, config)
        assert [e.reason for e in effects] == ["witch cannot save self"]

    def test_antidote_self_save_allowed_by_rule(self, config, make_snapshot):
        """witch_can_save_self permits the self save"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="witch")])
        effects = resolve_witch(
            [action("witch", ActionKind.ANTIDOTE, "witch")],
            snapshot,
            config.with_rules(witch_can_save_self=True),
        )
        assert kinds(effects)[-1] == EffectKind.SAVE
        assert not effects[-1].canceled

    def test_antidote_already_used(self, config, make_snapshot):
        """A spent antidote is reported before any other reason"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [
            UseAntidote(source_id="witch", target_id="v2"),
        ])
        effects = resolve_witch([action("witch", ActionKind.ANTIDOTE, "witch")], snapshot, config)
        assert [e.reason for e in effects] == ["no antidote"]

    def test_poison_defers_death(self, config, make_snapshot):
        """Poison only spends the potion; the death comes at night resolution"""
        effects = resolve_witch(
            [action("witch", ActionKind.POISON, "wolf1")],
            make_snapshot(PhaseType.NIGHT_WITCH),
            config,
        )
        assert len(effects) == 1
        assert isinstance(effects[0], UsePoison)
        assert effects[0].target_id == "wolf1"

    def test_poison_self_refused(self, config, make_snapshot):
        effects = resolve_witch(
            [action("witch", ActionKind.POISON, "witch")],
            make_snapshot(PhaseType.NIGHT_WITCH),
            config,
        )
        assert effects[0].kind == EffectKind.POISON
        assert effects[0].canceled
        assert effects[0].reason == "witch cannot poison self"

    def test_poison_already_used(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [UsePoison(source_id="witch", target_id="v2")])
        effects = resolve_witch([action("witch", ActionKind.POISON, "wolf1")], snapshot, config)
        assert [e.reason for e in effects] == ["no poison"]

    def test_antidote_and_poison_same_night(self, config, make_snapshot):
        """Both potions may be used in one night"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="v1")])
        effects = resolve_witch([
            action("witch", ActionKind.ANTIDOTE, "v1"),
            action("witch", ActionKind.POISON, "wolf1"),
        ], snapshot, config)
        assert kinds(effects) == [
            EffectKind.USE_ANTIDOTE,
            EffectKind.CLEAR_NIGHT_KILL,
            EffectKind.SAVE,
            EffectKind.USE_POISON,
        ]

    def test_potions_without_target_ignored(self, config, make_snapshot):
        """Targetless antidote and poison keep both potions"""
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="v1")])
        effects = resolve_witch([
            action("witch", ActionKind.ANTIDOTE),
            action("witch", ActionKind.POISON),
        ], snapshot, config)
        assert effects == []


class TestResolveSeer:
    """Test suite for the seer resolver"""

    def test_check_reports_camp(self, config, make_snapshot):
        effects = resolve_seer([
            action("seer", ActionKind.CHECK, "wolf1"),
        ], make_snapshot(PhaseType.NIGHT_SEER), config)
        assert len(effects) == 1
        assert effects[0].camp == Camp.EVIL
        assert effects[0].is_good is False

    def test_check_good_player(self, config, make_snapshot):
        effects = resolve_seer([action("seer", ActionKind.CHECK, "v1")], make_snapshot(PhaseType.NIGHT_SEER), config)
        assert effects[0].camp == Camp.GOOD
        assert effects[0].is_good is True

    def test_first_check_only(self, config, make_snapshot):
        effects = resolve_seer([
            action("seer", ActionKind.CHECK, "v1"),
            action("seer", ActionKind.CHECK, "wolf1"),
        ], make_snapshot(PhaseType.NIGHT_SEER), config)
        assert [e.target_id for e in effects] == ["v1"]

    def test_check_without_target_ignored(self, config, make_snapshot):
        effects = resolve_seer([
            action("seer", ActionKind.CHECK),
            action("seer", ActionKind.CHECK, "wolf2"),
        ], make_snapshot(PhaseType.NIGHT_SEER), config)
        assert [e.target_id for e in effects] == ["wolf2"]


class TestResolveNight:
    """Test suite for night resolution"""

    def test_pending_kill_lands(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [SetNightKill(target_id="v1")])
        effects = resolve_night([], snapshot, config)
        assert kinds(effects) == [EffectKind.KILL]
        assert effects[0].target_id == "v1"

    def test_no_kill_target_no_deaths(self, config, make_snapshot):
        assert resolve_night([], make_snapshot(PhaseType.NIGHT_RESOLVE), config) == []

    def test_protection_absorbs_kill(self, config, make_snapshot):
        """A protect applied after the wolves still stops the kill"""
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [
            SetNightKill(target_id="v1"),
            Protect(source_id="guard", target_id="v1"),
        ])
        effects = resolve_night([], snapshot, config)
        assert kinds(effects) == [EffectKind.CLEAR_NIGHT_KILL]

    def test_poisoned_players_die_in_sorted_order(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [
            UsePoison(source_id="witch", target_id="wolf2"),
            UsePoison(source_id="witch2", target_id="v2"),
        ])
        effects = resolve_night([], snapshot, config)
        assert [(e.kind, e.target_id) for e in effects] == [
            (EffectKind.POISON, "v2"),
            (EffectKind.POISON, "wolf2"),
        ]

    def test_killed_and_poisoned_dies_once(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [
            SetNightKill(target_id="v1"),
            UsePoison(source_id="witch", target_id="v1"),
        ])
        effects = resolve_night([], snapshot, config)
        assert kinds(effects) == [EffectKind.KILL]

    def test_hunter_death_triggers(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [SetNightKill(target_id="hunter")])
        effects = resolve_night([], snapshot, config)
        assert kinds(effects) == [EffectKind.KILL, EffectKind.HUNTER_TRIGGERED]
        assert isinstance(effects[1], HunterTriggered)
        assert effects[1].target_id == "hunter"

    def test_poisoned_hunter_triggers(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [UsePoison(source_id="witch", target_id="hunter")])
        effects = resolve_night([], snapshot, config)
        assert kinds(effects) == [EffectKind.POISON, EffectKind.HUNTER_TRIGGERED]


class TestResolveHunter:
    """Test suite for the hunter resolver"""

    def test_shoot(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_HUNTER, [HunterTriggered(source_id="hunter", target_id="hunter")])
        effects = resolve_hunter([action("hunter", ActionKind.SHOOT, "wolf1")], snapshot, config)
        assert kinds(effects) == [EffectKind.SHOOT]
        assert effects[0].target_id == "wolf1"

    def test_skip(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_HUNTER, [HunterTriggered(source_id="hunter", target_id="hunter")])
        effects = resolve_hunter([action("hunter", ActionKind.SKIP)], snapshot, config)
        assert kinds(effects) == [EffectKind.SKIP]

    def test_one_action_per_hunter(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.DAY_HUNTER, [HunterTriggered(source_id="hunter", target_id="hunter")])
        effects = resolve_hunter([
            action("hunter", ActionKind.SKIP),
            action("hunter", ActionKind.SHOOT, "wolf1"),
        ], snapshot, config)
        assert kinds(effects) == [EffectKind.SKIP]

    def test_shot_without_target_ignored(self, config, make_snapshot):
        """A shot at nobody doesn't use up the hunter's turn"""
        snapshot = make_snapshot(PhaseType.DAY_HUNTER, [HunterTriggered(source_id="hunter", target_id="hunter")])
        assert resolve_hunter([action("hunter", ActionKind.SHOOT)], snapshot, config) == []
        effects = resolve_hunter([
            action("hunter", ActionKind.SHOOT),
            action("hunter", ActionKind.SHOOT, "wolf2"),
        ], snapshot, config)
        assert kinds(effects) == [EffectKind.SHOOT]
        assert effects[0].target_id == "wolf2"


class TestResolveVote:
    """Test suite for the day vote"""

    def test_plurality_eliminates(self, config, make_snapshot):
        effects = resolve_vote([
            action("v1", ActionKind.VOTE, "wolf1"),
            action("v2", ActionKind.VOTE, "wolf1"),
            action("wolf1", ActionKind.VOTE, "v1"),
        ], make_snapshot(PhaseType.VOTE), config)
        assert kinds(effects) == [EffectKind.ELIMINATE]
        eliminate = effects[0]
        assert eliminate.target_id == "wolf1"
        assert eliminate.votes == 2
        assert eliminate.voters == ["v1", "v2"]
        assert eliminate.tally == {"wolf1": 2, "v1": 1}

    def test_tie_is_canceled_no_elimination(self, config, make_snapshot):
        effects = resolve_vote([
            action("v1", ActionKind.VOTE, "wolf1"),
            action("wolf1", ActionKind.VOTE, "v1"),
        ], make_snapshot(PhaseType.VOTE), config)
        assert kinds(effects) == [EffectKind.NO_ELIMINATION]
        assert effects[0].canceled
        assert effects[0].result == "tie"
        assert effects[0].tally == {"wolf1": 1, "v1": 1}

    def test_no_votes(self, config, make_snapshot):
        effects = resolve_vote([], make_snapshot(PhaseType.VOTE), config)
        assert effects[0].result == "no_votes"
        assert effects[0].canceled

    def test_eliminated_hunter_triggers(self, config, make_snapshot):
        effects = resolve_vote([action("v1", ActionKind.VOTE, "hunter")], make_snapshot(PhaseType.VOTE), config)
        assert kinds(effects) == [EffectKind.ELIMINATE, EffectKind.HUNTER_TRIGGERED]


class TestResolveDay:
    def test_speech_has_no_effects(self, config, make_snapshot):
        effects = resolve_day(
            [action("v1", ActionKind.SPEAK, content="I trust wolf2")],
            make_snapshot(PhaseType.DAY),
            config,
        )
        assert effects == []


class TestPurity:
    """Resolvers only read their inputs"""

    def test_same_inputs_same_effects(self, config, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_WITCH, [SetNightKill(target_id="v1")])
        actions = [
            action("witch", ActionKind.ANTIDOTE, "v1"),
            action("witch", ActionKind.POISON, "wolf1"),
        ]
        assert resolve_witch(actions, snapshot, config) == resolve_witch(actions, snapshot, config)

    def test_resolver_leaves_state_untouched(self, config, state, make_snapshot):
        snapshot = make_snapshot(PhaseType.NIGHT_RESOLVE, [SetNightKill(target_id="v1")])
        resolve_night([], snapshot, config)
        assert state.player("v1").alive
        assert state.round_context().kill_target == "v1"
        assert snapshot.player("v1").alive
