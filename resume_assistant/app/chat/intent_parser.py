"""Rule-based parsing of chat messages into modification intents.

`RegexIntentParser` is one implementation of the `IntentParser` protocol. It
tries a fixed list of section rules in priority order; the first rule whose
trigger matches the message owns the result:

    1. compound title + summary instructions
    2. "make me <role>"
    3. "latest job" without a title cue
    4. job title
    5. contact: email, misspelled email, phone, location
    6. skills
    7. summary
    8. achievements
    9. experience
    10. bare "add senior"

Anything that reaches no rule gets a generic low-confidence intent with a
clarification question. Parsing is deterministic and has no side effects.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass

from resume_assistant.app.chat.models import ModificationIntent, ParseContext

log = logging.getLogger(__name__)

TECHNICAL_KEYWORDS = frozenset(
    [
        "javascript", "typescript", "python", "java", "c++", "c#", "ruby", "go", "rust",
        "react", "angular", "vue", "node", "express", "django", "flask", "spring",
        "sql", "mongodb", "postgresql", "redis", "elasticsearch",
        "aws", "azure", "gcp", "docker", "kubernetes", "ci/cd",
        "git", "github", "gitlab", "jenkins", "terraform",
        "html", "css", "sass", "tailwind", "bootstrap",
        "api", "rest", "graphql", "websocket", "grpc",
        "testing", "jest", "cypress", "selenium", "junit",
    ]
)  # fmt: skip

MODIFICATION_VERBS = (
    "add", "change", "update", "modify", "remove", "delete", "replace", "set", "make", "insert",
)  # fmt: skip

GENERIC_QUESTION = "What would you like to modify? (job title, email, skills, summary, etc.)"
GENERIC_SUGGESTED_FIELDS = ["experiences[latest].title", "contact.email", "skills.technical"]

ORDINALS = {
    "first": 0,
    "second": 1,
    "third": 2,
    "fourth": 3,
    "fifth": 4,
    "latest": 0,
    "most recent": 0,
}

_VERB_RE = re.compile(r"\b(" + "|".join(MODIFICATION_VERBS) + r")\b")
_ORDINAL_RE = re.compile(r"\b(first|second|third|fourth|fifth|latest|most recent|\d+)\b")
_ROMAN_RE = re.compile(r"^(i{1,3}|iv|v)$", re.IGNORECASE)
_SKILL_SPLIT_RE = re.compile(r"\s+and\s+|,\s*", re.IGNORECASE)
_TOKEN_SPLIT_RE = re.compile(r"[\s,;()]+")


def parse_ordinal(ordinal: str) -> int:
    """Convert an ordinal word or a 1-based number into a 0-based index."""
    lower = ordinal.lower().strip()
    if lower in ORDINALS:
        return ORDINALS[lower]
    if lower.isdigit():
        return max(int(lower) - 1, 0)
    return 0


def strip_quotes(value: str) -> str:
    """Remove one pair of surrounding double or single quotes."""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
        value = value[1:-1]
    return value.strip()


def is_technical_skill(skill: str) -> bool:
    """Return True when any token of `skill` is a known technical keyword."""
    lower = skill.lower().strip()
    if lower in TECHNICAL_KEYWORDS:
        return True
    return any(token in TECHNICAL_KEYWORDS for token in _TOKEN_SPLIT_RE.split(lower))


def normalize_message(message: str) -> str:
    """Fix common typos: a leading "ad " becomes "add ", "skillz" becomes "skills"."""
    normalized = re.sub(r"^\s*ad\s+", "add ", message, flags=re.IGNORECASE)
    return re.sub(r"skillz", "skills", normalized, flags=re.IGNORECASE).strip()


@dataclass(frozen=True)
class _Rule:
    name: str
    matches: Callable[[str], bool]
    handle: Callable[[str, str, ParseContext | None], ModificationIntent]


def _intent(**kwargs) -> ModificationIntent:
    return ModificationIntent(is_modification=True, **kwargs)


class RegexIntentParser:
    """Parse chat messages with an ordered cascade of section rules."""

    def __init__(self):
        self._rules = [
            _Rule("compound", self._is_compound, self._parse_compound),
            _Rule("make_me", self._is_make_me, self._parse_make_me),
            _Rule("latest_job", self._is_latest_job, self._parse_latest_job),
            _Rule("title", lambda lower: "title" in lower, self._parse_title),
            _Rule("email", lambda lower: "email" in lower, self._contact("email")),
            _Rule("email_typo", lambda lower: "emial" in lower, self._parse_email_typo),
            _Rule("phone", lambda lower: "phone" in lower, self._contact("phone")),
            _Rule("location", lambda lower: "location" in lower, self._contact("location")),
            _Rule("skills", lambda lower: "skill" in lower, self._parse_skills),
            _Rule("summary", lambda lower: "summary" in lower, self._parse_summary),
            _Rule("achievements", lambda lower: "achievement" in lower, self._parse_achievements),
            _Rule("experience", lambda lower: "experience" in lower, self._parse_experience),
            _Rule("add_senior", lambda lower: lower.startswith("add senior"), self._parse_add_senior),
        ]

    @property
    def rule_names(self) -> list[str]:
        """The rule names in the order they are tried."""
        return [rule.name for rule in self._rules]

    def parse(
        self,
        message: str,
        context: ParseContext | None = None,
    ) -> ModificationIntent:
        """Parse a chat message into a modification intent.

        Args:
            message (str): The user's message.
            context (ParseContext | None): The current document, used for relative
                references ("previous job") and duplicate skill detection.

        Returns:
            ModificationIntent: The parsed intent. Ambiguous messages produce an intent
                with `requires_clarification=True` rather than an error.

        Raises:
            ValueError: If the message is empty.

        Notes:
            1. Normalize common typos.
            2. Messages without a modification verb return `is_modification=False`, confidence 0.
            3. Try each rule in priority order; the first matching rule produces the intent.
            4. With no matching rule, return a generic intent with confidence 0.3.

        """
        if not message or not message.strip():
            raise ValueError("Empty message is not allowed")

        _msg = "RegexIntentParser.parse starting"
        log.debug(_msg)

        normalized = normalize_message(message)
        lower = normalized.lower()

        if not _VERB_RE.search(lower):
            _msg = "Message has no modification verb"
            log.debug(_msg)
            return ModificationIntent(
                is_modification=False,
                operation="replace",
                field_path="",
                confidence=0.0,
            )

        for rule in self._rules:
            if rule.matches(lower):
                _msg = f"Message matched rule '{rule.name}'"
                log.debug(_msg)
                return rule.handle(normalized, lower, context)

        return _intent(
            operation="replace",
            field_path="",
            confidence=0.3,
            requires_clarification=True,
            clarification_question=GENERIC_QUESTION,
            suggested_fields=list(GENERIC_SUGGESTED_FIELDS),
        )

    # Field path resolution

    def _title_path(self, lower: str, context: ParseContext | None) -> str:
        if "previous" in lower and context and context.experience_count > 1:
            return "experiences[1].title"
        return "experiences[0].title" if context else "experiences[latest].title"

    # Rule triggers

    @staticmethod
    def _is_compound(lower: str) -> bool:
        return "title" in lower and "summary" in lower and " and " in lower

    @staticmethod
    def _is_make_me(lower: str) -> bool:
        return "title" not in lower and re.search(r"\bmake me\s+", lower) is not None

    @staticmethod
    def _is_latest_job(lower: str) -> bool:
        return (
            ("latest job" in lower or "most recent job" in lower)
            and "title" not in lower
            and "achievement" not in lower
        )

    # Rule handlers

    def _parse_compound(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        title_match = re.search(r"title\s+to\s+(.+?)(?:\s+and\b|$)", message, re.IGNORECASE)
        summary_match = re.search(r"add\s+(.+?)\s+to\s+(?:my\s+)?summary", message, re.IGNORECASE)

        if title_match:
            title_message = f"change my title to {title_match.group(1)}"
            first = self._parse_title(title_message, title_message.lower(), context)
        else:
            first = self._parse_title(message, lower, context)

        if summary_match:
            summary_message = f"add to summary: {summary_match.group(1)}"
            second = self._parse_summary(summary_message, summary_message.lower(), context)
        else:
            second = self._parse_summary(message, lower, context)

        return first.model_copy(update={"modifications": [first, second]})

    def _parse_make_me(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        return self._parse_title(message + " title", lower + " title", context)

    def _parse_latest_job(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        field_path = self._title_path(lower, context)
        return _intent(
            operation="replace",
            field_path=field_path,
            confidence=0.6,
            requires_clarification=True,
            clarification_question="What would you like to change about your latest job?",
            suggested_fields=[field_path],
        )

    def _parse_title(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        field_path = self._title_path(lower, context)

        make_me = re.search(r"make\s+me\s+(?:an?\s+)?(.+?)(?:\s+title)?$", message, re.IGNORECASE)
        if make_me:
            return _intent(
                operation="replace",
                field_path=field_path,
                new_value=strip_quotes(make_me.group(1)),
                confidence=0.9,
            )

        if re.search(r"add\s+(.+?)\s+to\b.*title", lower):
            match = re.search(r"add\s+(.+?)\s+to\b", message, re.IGNORECASE)
            raw_value = strip_quotes(match.group(1)) if match else ""
            is_suffix = (
                re.search(r"\bend\b", lower) is not None
                or "suffix" in lower
                or _ROMAN_RE.match(raw_value) is not None
            )
            return _intent(
                operation="suffix" if is_suffix else "prefix",
                field_path=field_path,
                new_value=f" {raw_value}" if is_suffix else f"{raw_value} ",
                confidence=0.9,
            )

        end_match = re.search(r"add\s+(\S+)\s+(?:at the end|to end|at end)", message, re.IGNORECASE)
        if end_match:
            return _intent(
                operation="suffix",
                field_path=field_path,
                new_value=" " + strip_quotes(end_match.group(1)),
                confidence=0.9,
            )

        if re.search(r"(change|update|make|set|replace).*title\s+to\b", lower):
            match = re.search(r"title\s+to\s+(.+?)\s*$", message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="replace",
                    field_path=field_path,
                    new_value=value,
                    confidence=0.85,
                )

        return _intent(
            operation="replace",
            field_path=field_path,
            confidence=0.5,
            requires_clarification=True,
            clarification_question=(
                "Would you like to add text, replace the entire title, or make another change?"
            ),
            suggested_fields=[field_path],
        )

    def _contact(self, field: str):
        def handle(message: str, lower: str, context: ParseContext | None) -> ModificationIntent:
            if field == "phone":
                pattern = r"(?:phone number|phone|number)\s+(?:to|is)\s+(.+?)\s*$"
            else:
                pattern = rf"{field}\s+(?:to|is)\s+(.+?)\s*$"
            match = re.search(pattern, message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="replace",
                    field_path=f"contact.{field}",
                    new_value=value,
                    confidence=0.95,
                )
            return _intent(
                operation="replace",
                field_path=f"contact.{field}",
                confidence=0.4,
                requires_clarification=True,
                clarification_question=f"What would you like to change your {field} to?",
                suggested_fields=[f"contact.{field}"],
            )

        return handle

    def _parse_email_typo(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        return _intent(
            operation="replace",
            field_path="contact.email",
            confidence=0.4,
            requires_clarification=True,
            clarification_question="Did you want to change your email address?",
            suggested_fields=["contact.email"],
        )

    def _parse_skills(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        if re.search(r"\badd\b", lower):
            match = re.search(r"add\s+(.+?)\s+(?:to|in)\b", message, re.IGNORECASE)
            skills_text = match.group(1).strip() if match else ""
            if not skills_text or skills_text.lower() in ("to", "skill", "skills", "a skill"):
                return _intent(
                    operation="append",
                    field_path="skills.technical",
                    confidence=0.4,
                    requires_clarification=True,
                    clarification_question="Which skill would you like to add?",
                    suggested_fields=["skills.technical", "skills.soft"],
                )

            skills = [strip_quotes(s) for s in _SKILL_SPLIT_RE.split(skills_text) if s.strip()]
            field_path = "skills.technical" if is_technical_skill(skills[0]) else "skills.soft"

            existing = {s.lower() for s in context.skills()} if context else set()
            duplicates = [s for s in skills if s.lower() in existing]
            fresh = [s for s in skills if s.lower() not in existing]
            warnings = [f"{s} already exists in skills" for s in duplicates] or None

            if not fresh:
                return _intent(
                    operation="append",
                    field_path=field_path,
                    new_value=skills[0],
                    confidence=0.9,
                    warnings=warnings,
                    should_skip=True,
                )
            if len(fresh) > 1:
                return _intent(
                    operation="append",
                    field_path=field_path,
                    values=fresh,
                    confidence=0.85,
                    warnings=warnings,
                )
            return _intent(
                operation="append",
                field_path=field_path,
                new_value=fresh[0],
                confidence=0.9,
                warnings=warnings,
            )

        if re.search(r"\b(remove|delete)\b", lower):
            match = re.search(r"(?:remove|delete)\s+(.+?)\s+from\b", message, re.IGNORECASE)
            skill = strip_quotes(match.group(1)) if match else ""
            ordinal = re.search(r"\b(first|second|third|fourth|fifth|\d+)\b", lower)
            if ordinal and (not skill or "skill" in skill.lower()):
                return _intent(
                    operation="remove",
                    field_path=f"skills.technical[{parse_ordinal(ordinal.group(1))}]",
                    confidence=0.85,
                )
            field_path = "skills.technical"
            if skill and context:
                soft = (context.document or {}).get("skills", {})
                if isinstance(soft, dict) and skill.lower() in {
                    str(s).lower() for s in soft.get("soft", []) or []
                }:
                    field_path = "skills.soft"
            return _intent(
                operation="remove",
                field_path=field_path,
                target_value=skill or None,
                confidence=0.85 if skill else 0.5,
                requires_clarification=not skill,
                clarification_question=None if skill else "Which skill would you like to remove?",
            )

        return _intent(
            operation="append",
            field_path="skills.technical",
            confidence=0.4,
            requires_clarification=True,
            clarification_question="Which skill would you like to add or remove?",
            suggested_fields=["skills.technical", "skills.soft"],
        )

    def _parse_summary(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        if re.search(r"\b(change|update|replace|set)\b", lower):
            match = re.search(r"summary\s+to\s+(.+?)\s*$", message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="replace",
                    field_path="summary",
                    new_value=value,
                    confidence=0.9,
                )
            return _intent(
                operation="replace",
                field_path="summary",
                confidence=0.5,
                requires_clarification=True,
                clarification_question="What would you like your summary to say?",
                suggested_fields=["summary"],
            )

        if re.search(r"\badd\b", lower):
            match = re.search(
                r"add\s+(?:to\s+)?(?:my\s+)?summary:?\s*(.+?)\s*$", message, re.IGNORECASE
            ) or re.search(r"add\s+(.+?)\s+to\s+(?:my\s+)?summary\s*$", message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="suffix",
                    field_path="summary",
                    new_value=" " + value,
                    confidence=0.85,
                )
            return _intent(
                operation="suffix",
                field_path="summary",
                confidence=0.4,
                requires_clarification=True,
                clarification_question="What would you like to add to your summary?",
                suggested_fields=["summary"],
            )

        return _intent(
            operation="replace",
            field_path="summary",
            confidence=0.4,
            requires_clarification=True,
            clarification_question="What would you like to change about your summary?",
            suggested_fields=["summary"],
        )

    def _parse_achievements(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        field_path = "experiences[latest].achievements"

        if re.search(r"\badd\b", lower):
            match = re.search(r"achievement.*?:\s*(.+?)\s*$", message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="append",
                    field_path=field_path,
                    new_value=value,
                    confidence=0.9,
                )
            return _intent(
                operation="append",
                field_path=field_path,
                confidence=0.5,
                requires_clarification=True,
                clarification_question="What achievement would you like to add?",
                suggested_fields=[field_path],
            )

        ordinal = _ORDINAL_RE.search(lower)

        if re.search(r"\b(remove|delete)\b", lower):
            index = parse_ordinal(ordinal.group(1)) if ordinal else 1
            return _intent(
                operation="remove",
                field_path=f"{field_path}[{index}]",
                confidence=0.85,
            )

        if re.search(r"\b(change|update|replace)\b", lower):
            index = parse_ordinal(ordinal.group(1)) if ordinal else 0
            match = re.search(r"achievement.*?(?:\bto\b|:)\s*(.+?)\s*$", message, re.IGNORECASE)
            value = strip_quotes(match.group(1)) if match else ""
            if value:
                return _intent(
                    operation="replace",
                    field_path=f"{field_path}[{index}]",
                    new_value=value,
                    confidence=0.85,
                )
            return _intent(
                operation="replace",
                field_path=f"{field_path}[{index}]",
                confidence=0.5,
                requires_clarification=True,
                clarification_question="What should this achievement say instead?",
                suggested_fields=[f"{field_path}[{index}]"],
            )

        return _intent(
            operation="append",
            field_path=field_path,
            confidence=0.4,
            requires_clarification=True,
            clarification_question="What achievement would you like to add, change, or remove?",
            suggested_fields=[field_path],
        )

    def _parse_experience(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        ordinal = _ORDINAL_RE.search(lower)
        index = parse_ordinal(ordinal.group(1)) if ordinal else 0
        field_path = "experiences[latest]" if index == 0 else f"experiences[{index}]"
        return _intent(
            operation="replace",
            field_path=field_path,
            confidence=0.5,
            requires_clarification=True,
            clarification_question="What would you like to change about this experience?",
            suggested_fields=[f"{field_path}.title", f"{field_path}.achievements"],
        )

    def _parse_add_senior(
        self, message: str, lower: str, context: ParseContext | None
    ) -> ModificationIntent:
        return _intent(
            operation="prefix",
            field_path="",
            confidence=0.4,
            requires_clarification=True,
            clarification_question=(
                "What would you like to add Senior to? (e.g., experiences[latest].title)"
            ),
            suggested_fields=["experiences[latest].title"],
        )


_default_parser = RegexIntentParser()


def parse_modification_intent(
    message: str,
    context: ParseContext | dict | None = None,
) -> ModificationIntent:
    """Parse `message` with the default rule-based parser.

    Args:
        message (str): The user's chat message.
        context (ParseContext | dict | None): A ParseContext, or the raw document.

    Returns:
        ModificationIntent: The parsed intent.

    Raises:
        ValueError: If the message is empty.

    """
    if isinstance(context, dict):
        context = ParseContext(document=context)
    return _default_parser.parse(message, context)
