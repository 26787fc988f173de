"""
Cartridge Validator - Validates consistency of YAML game cartridges

Checks:
- Location references: start location, portal destinations, entities listed
  in locations and zones exist
- Containment references: authored children exist and no entity is its own
  ancestor
- Rule references: item_id on "use X on Y" rules and STATE conditions point
  at real entities
- Flag consistency: flags checked by conditions are set somewhere (warnings,
  since a flag can also be set by an NPC topic added later)
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path

from casefile.models.content import (
    FlagCondition,
    Game,
    HasFlagCondition,
    NoFlagCondition,
    Outcome,
    Rule,
    StateCondition,
    StateMatchCondition,
)
from casefile.models.effects import UnknownEffect


@dataclass
class ValidationReport:
    """Result of cartridge validation"""

    game_id: str
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """A cartridge is valid if there are no errors (warnings are OK)"""
        return len(self.errors) == 0

    def add_error(self, message: str):
        self.errors.append(message)

    def add_warning(self, message: str):
        self.warnings.append(message)


class GameValidator:
    """Validates cartridge consistency"""

    def __init__(self, game: Game):
        self.game = game
        self.report = ValidationReport(game_id=game.id)

        self.flags_set: dict[str, list[str]] = {}  # flag -> [where set]
        self.flags_checked: dict[str, list[str]] = {}  # flag -> [where checked]

    @property
    def entity_ids(self) -> set[str]:
        return (
            set(self.game.game_objects)
            | set(self.game.items)
            | set(self.game.npcs)
            | set(self.game.portals)
        )

    def validate(self) -> ValidationReport:
        """Run all validation checks"""
        self._validate_location_references()
        self._validate_containment()
        self._validate_rules()
        self._validate_flag_consistency()
        return self.report

    # =========================================================================
    # Locations and zones
    # =========================================================================

    def _validate_location_references(self):
        locations = self.game.locations

        if self.game.start_location_id not in locations:
            self.report.add_error(f"start_location_id '{self.game.start_location_id}' is invalid")

        if self.game.start_chapter_id and self.game.start_chapter_id not in self.game.chapters:
            self.report.add_error(f"start_chapter_id '{self.game.start_chapter_id}' is invalid")

        for item_id in self.game.starting_inventory:
            if item_id not in self.game.items:
                self.report.add_error(f"Starting inventory contains invalid item '{item_id}'")

        for portal_id, portal in self.game.portals.items():
            if portal.to_location_id not in locations:
                self.report.add_error(
                    f"Portal '{portal_id}' leads to invalid location '{portal.to_location_id}'"
                )

        for loc_id, location in locations.items():
            for obj_id in location.objects:
                if obj_id not in self.game.game_objects and obj_id not in self.game.items:
                    self.report.add_error(f"Location '{loc_id}' lists invalid object '{obj_id}'")
            for npc_id in location.npcs:
                if npc_id not in self.game.npcs:
                    self.report.add_error(f"Location '{loc_id}' lists invalid NPC '{npc_id}'")
            for portal_id in location.exit_portals:
                if portal_id not in self.game.portals:
                    self.report.add_error(f"Location '{loc_id}' lists invalid portal '{portal_id}'")

            zone_ids = {zone.id for zone in location.zones}
            for zone in location.zones:
                if zone.parent and zone.parent not in zone_ids:
                    self.report.add_error(
                        f"Zone '{loc_id}/{zone.id}' has invalid parent zone '{zone.parent}'"
                    )
                for obj_id in zone.object_ids:
                    if obj_id not in self.entity_ids:
                        self.report.add_error(f"Zone '{loc_id}/{zone.id}' lists invalid entity '{obj_id}'")
            if len([z for z in location.zones if z.is_default]) > 1:
                self.report.add_warning(f"Location '{loc_id}' has more than one default zone")

    # =========================================================================
    # Containment
    # =========================================================================

    def _validate_containment(self):
        parents: dict[str, str] = {}
        for entity in [*self.game.game_objects.values(), *self.game.items.values()]:
            for child_id in [*entity.children.objects, *entity.children.items]:
                if child_id not in self.game.game_objects and child_id not in self.game.items:
                    self.report.add_error(f"Entity '{entity.id}' has invalid child '{child_id}'")
                    continue
                if child_id in parents:
                    self.report.add_error(
                        f"Entity '{child_id}' is a child of both '{parents[child_id]}' and '{entity.id}'"
                    )
                parents[child_id] = entity.id

        for child_id in parents:
            seen = {child_id}
            current = parents.get(child_id)
            while current is not None:
                if current in seen:
                    self.report.add_error(f"Containment cycle through '{child_id}'")
                    break
                seen.add(current)
                current = parents.get(current)

    # =========================================================================
    # Rules and flags
    # =========================================================================

    def _iter_rules(self):
        """Yield (where, rule) for every authored rule"""
        owners = [*self.game.game_objects.values(), *self.game.items.values()]
        for owner in owners:
            for key, rule_set in owner.handlers.items():
                for rule in _as_list(rule_set):
                    yield f"{owner.id}/{key}", rule
            for state_id, entry in owner.state_map.items():
                for key, rule_set in entry.overrides.items():
                    for rule in _as_list(rule_set):
                        yield f"{owner.id}/state_map:{state_id}/{key}", rule
        for npc in self.game.npcs.values():
            for key, rule_set in npc.handlers.items():
                for rule in _as_list(rule_set):
                    yield f"{npc.id}/{key}", rule

    def _validate_rules(self):
        for where, rule in self._iter_rules():
            if rule.item_id and rule.item_id not in self.entity_ids:
                self.report.add_error(f"Rule {where} answers to invalid item '{rule.item_id}'")
            for condition in rule.conditions:
                if isinstance(condition, (StateCondition, StateMatchCondition)):
                    if condition.entity_id not in self.entity_ids:
                        self.report.add_error(
                            f"Rule {where} checks state of invalid entity '{condition.entity_id}'"
                        )
                elif isinstance(condition, (FlagCondition, HasFlagCondition, NoFlagCondition)):
                    self._record(self.flags_checked, condition.flag, where)
            for outcome in (rule.success, rule.fail):
                self._collect_outcome(outcome, where)

        for npc in self.game.npcs.values():
            for topic in npc.topics:
                self._collect_outcome(topic.response, f"{npc.id}/topic:{topic.topic_id}")
                for flag in [*topic.required_flags_all, *topic.forbidden_flags_any]:
                    self._record(self.flags_checked, flag, f"{npc.id}/topic:{topic.topic_id}")

        for chapter in self.game.chapters.values():
            for objective in chapter.objectives:
                self._record(self.flags_checked, objective.flag, f"chapter:{chapter.id}")

    def _collect_outcome(self, outcome: Outcome | None, where: str):
        if outcome is None:
            return
        for effect in outcome.effects:
            kind = getattr(effect, "type", None)
            if kind == "SET_FLAG":
                self._record(self.flags_set, effect.flag, where)
            elif kind in ("REVEAL_FROM_PARENT", "ADD_TO_CONTAINER", "SET_ENTITY_STATE", "ADD_ITEM"):
                entity_id = getattr(effect, "entity_id", None) or getattr(effect, "item_id", None)
                if entity_id and entity_id not in self.entity_ids:
                    self.report.add_error(f"Outcome at {where} references invalid entity '{entity_id}'")
            elif isinstance(effect, UnknownEffect):
                self.report.add_warning(f"Outcome at {where} has an effect type the engine ignores")

    @staticmethod
    def _record(table: dict[str, list[str]], flag: str, where: str):
        table.setdefault(flag, []).append(where)

    def _validate_flag_consistency(self):
        for flag, places in self.flags_checked.items():
            if flag not in self.flags_set and not flag.startswith("timer_"):
                for where in places:
                    self.report.add_warning(f"Flag '{flag}' is checked at {where} but never set anywhere")


def _as_list(rule_set) -> list[Rule]:
    return [rule_set] if isinstance(rule_set, Rule) else list(rule_set)


def validate_game(game_id: str, games_dir: str | Path | None = None) -> ValidationReport:
    """
    Validate a cartridge for consistency.

    Args:
        game_id: The cartridge identifier (folder name in games/)
        games_dir: Optional path to the games directory

    Returns:
        ValidationReport with errors and warnings
    """
    from casefile.engine.game_loader import GameLoader

    game = GameLoader(games_dir).load_game(game_id, validate=False)
    return GameValidator(game).validate()


def main():
    """CLI entry point for cartridge validation"""
    if len(sys.argv) < 2:
        print("Usage: python -m casefile.engine.game_validator <game_id>")
        print("Example: python -m casefile.engine.game_validator archive-break-in")
        sys.exit(1)

    game_id = sys.argv[1]

    try:
        report = validate_game(game_id)
    except FileNotFoundError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"\n{'=' * 60}")
    print(f"Cartridge Validation: {game_id}")
    print(f"{'=' * 60}\n")

    if report.errors:
        print(f"ERRORS ({len(report.errors)}):")
        for error in report.errors:
            print(f"  - {error}")
        print()

    if report.warnings:
        print(f"WARNINGS ({len(report.warnings)}):")
        for warning in report.warnings:
            print(f"  - {warning}")
        print()

    if report.is_valid:
        print("Cartridge is valid!")
        if report.warnings:
            print(f"   (but has {len(report.warnings)} warning(s))")
    else:
        print("Cartridge has errors that must be fixed.")
        sys.exit(1)


if __name__ == "__main__":
    main()
