"""
Rule-based command parser.

Splits raw player input into a verb, a target phrase and an optional
instrument phrase using token heuristics only. Anything smarter (synonyms the
table does not know, full sentences) is left to the interpreter collaborator.

Example:
    >>> parser = CommandParser()
    >>> command = parser.parse("use the crowbar on the crate")
    >>> command.verb, command.target, command.instrument
    ('use', 'crate', 'crowbar')
    >>> parser.parse("pick up notebook").verb
    'take'
"""

from __future__ import annotations

import re

from pydantic import BaseModel


class ParsedCommand(BaseModel):
    """Structured form of one line of player input.

    Attributes:
        raw: The input exactly as typed
        verb: Canonical verb ("examine", "take", ...), or the first word if
            the verb is not recognised
        target: What the verb acts on ("safe" in "unlock safe with key")
        instrument: What the verb is done with ("key" in the same example)
        known: True if the verb came from the alias table
    """

    raw: str
    verb: str
    target: str | None = None
    instrument: str | None = None
    known: bool = True


class CommandParser:
    """Parse commands without an LLM.

    Verb aliases are matched longest-first so "look in" beats "look" and
    "move to" beats "move".

    Dual-object forms:
        - "use X on/with Y"       -> verb use, target Y, instrument X
        - "<verb> Y with/using X" -> target Y, instrument X
        - "call N on/with/using P" -> target N, instrument P
        - "combine X with/and/to Y" -> target X, instrument Y
    """

    VERB_ALIASES: dict[str, str] = {
        "examine": "examine",
        "x": "examine",
        "inspect": "examine",
        "check": "examine",
        "study": "examine",
        "look at": "examine",
        "look": "look",
        "l": "look",
        "look around": "look",
        "search": "search",
        "look in": "search",
        "look inside": "search",
        "look under": "search",
        "look behind": "search",
        "rummage through": "search",
        "take": "take",
        "get": "take",
        "grab": "take",
        "pick up": "take",
        "drop": "drop",
        "put down": "drop",
        "discard": "drop",
        "open": "open",
        "close": "close",
        "shut": "close",
        "unlock": "unlock",
        "lock": "lock",
        "move": "move",
        "push": "move",
        "pull": "move",
        "shift": "move",
        "slide": "move",
        "break": "break",
        "smash": "break",
        "pry open": "break",
        "force open": "break",
        "read": "read",
        "use": "use",
        "climb": "climb",
        "climb up": "climb",
        "climb on": "climb",
        "climb onto": "climb",
        "climb in": "climb",
        "climb into": "climb",
        "clamber onto": "climb",
        "combine": "combine",
        "attach": "combine",
        "join": "combine",
        "go": "go",
        "go to": "go",
        "walk to": "go",
        "move to": "go",
        "head to": "go",
        "approach": "go",
        "enter": "go",
        "talk": "talk",
        "talk to": "talk",
        "speak to": "talk",
        "speak with": "talk",
        "chat with": "talk",
        "call": "call",
        "dial": "call",
        "inventory": "inventory",
        "inv": "inventory",
        "i": "inventory",
        "help": "help",
        "?": "help",
        "password": "input",
        "say": "input",
        "type": "input",
        "enter code": "input",
        "enter password": "input",
    }

    _ARTICLES = re.compile(r"^(the|a|an|my|your)\s+", re.IGNORECASE)
    _USE_SPLIT = re.compile(r"^(.+?)\s+(?:on|with|in|into)\s+(.+)$")
    _WITH_SPLIT = re.compile(r"^(.+?)\s+(?:with|using)\s+(.+)$")
    _CALL_SPLIT = re.compile(r"^(.+?)\s+(?:on|with|using)\s+(.+)$")
    _COMBINE_SPLIT = re.compile(r"^(.+?)\s+(?:with|and|to)\s+(.+)$")

    def __init__(self) -> None:
        self._aliases = sorted(self.VERB_ALIASES, key=len, reverse=True)

    @classmethod
    def strip_articles(cls, phrase: str | None) -> str | None:
        if phrase is None:
            return None
        phrase = phrase.strip().strip('"').strip("'").strip()
        phrase = cls._ARTICLES.sub("", phrase)
        return phrase or None

    def parse(self, raw_input: str) -> ParsedCommand | None:
        """Parse player input.

        Args:
            raw_input: The raw player input string

        Returns:
            ParsedCommand, or None for empty input
        """
        normalized = " ".join(raw_input.lower().strip().rstrip(".!").split())
        if not normalized:
            return None

        for alias in self._aliases:
            if normalized == alias or normalized.startswith(alias + " "):
                verb = self.VERB_ALIASES[alias]
                rest = normalized[len(alias):].strip()
                return self._build(raw_input, verb, rest, known=True)

        first, _, rest = normalized.partition(" ")
        return ParsedCommand(
            raw=raw_input,
            verb=first,
            target=self.strip_articles(rest),
            known=False,
        )

    def _build(self, raw: str, verb: str, rest: str, known: bool) -> ParsedCommand:
        if not rest:
            return ParsedCommand(raw=raw, verb=verb, known=known)

        # Passwords and phone numbers keep their text untouched
        if verb == "input":
            return ParsedCommand(raw=raw, verb=verb, target=rest.strip('"').strip("'"), known=known)

        if verb == "call":
            match = self._CALL_SPLIT.match(rest)
            if match:
                return ParsedCommand(
                    raw=raw,
                    verb=verb,
                    target=match.group(1).strip('"'),
                    instrument=self.strip_articles(match.group(2)),
                    known=known,
                )
            return ParsedCommand(raw=raw, verb=verb, target=rest.strip('"'), known=known)

        if verb == "combine":
            match = self._COMBINE_SPLIT.match(rest)
            if match:
                return ParsedCommand(
                    raw=raw,
                    verb=verb,
                    target=self.strip_articles(match.group(1)),
                    instrument=self.strip_articles(match.group(2)),
                    known=known,
                )
            return ParsedCommand(raw=raw, verb=verb, target=self.strip_articles(rest), known=known)

        if verb == "use":
            match = self._USE_SPLIT.match(rest)
            if match:
                return ParsedCommand(
                    raw=raw,
                    verb=verb,
                    target=self.strip_articles(match.group(2)),
                    instrument=self.strip_articles(match.group(1)),
                    known=known,
                )
            return ParsedCommand(raw=raw, verb=verb, target=self.strip_articles(rest), known=known)

        match = self._WITH_SPLIT.match(rest)
        if match:
            return ParsedCommand(
                raw=raw,
                verb=verb,
                target=self.strip_articles(match.group(1)),
                instrument=self.strip_articles(match.group(2)),
                known=known,
            )
        return ParsedCommand(raw=raw, verb=verb, target=self.strip_articles(rest), known=known)
