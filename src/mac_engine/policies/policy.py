"""Policy value type, builder, and the fixed system policies."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Policy:
    """A natural-language behavioral constraint injected into prompts.

    Attributes:
        name: Unique across system and user policies
        description: What the policy is for
        rule: The instruction given to the model
        tags: Labels used for bulk activation
    """

    name: str
    description: str
    rule: str
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        # Accept any iterable of tags but store an immutable tuple
        object.__setattr__(self, "tags", tuple(self.tags))

    def to_prompt(self) -> str:
        """Render the policy as the text shown to the model."""
        return (
            f"Policy: {self.name}\n"
            f"Description: {self.description}\n"
            f"Rule: {self.rule.strip()}\n"
            f"Tags: {','.join(self.tags)}"
        )

    def matches_tags(self, tags: set[str]) -> bool:
        """True if this policy shares at least one tag with `tags`."""
        return not tags.isdisjoint(self.tags)


class PolicyBuilder:
    """Fluent builder for Policy values.

    Example:
        >>> policy = (
        ...     PolicyBuilder()
        ...     .set_name("Calm Tone")
        ...     .set_description("Avoid alarmist language")
        ...     .set_rule("Maintain a calm, neutral tone.")
        ...     .set_tags(["tone"])
        ...     .build()
        ... )
    """

    def __init__(self) -> None:
        self._name = ""
        self._description = ""
        self._rule = ""
        self._tags: list[str] = []

    def set_name(self, name: str) -> "PolicyBuilder":
        self._name = name
        return self

    def set_description(self, description: str) -> "PolicyBuilder":
        self._description = description
        return self

    def set_rule(self, rule: str) -> "PolicyBuilder":
        self._rule = rule
        return self

    def set_tags(self, tags: list[str]) -> "PolicyBuilder":
        self._tags = list(tags)
        return self

    def build(self) -> Policy:
        """Create the Policy.

        Raises:
            ValueError: If the name or the rule is empty
        """
        if not self._name.strip():
            raise ValueError("Policy name cannot be empty")
        if not self._rule.strip():
            raise ValueError(f"Policy '{self._name}' must have a rule")
        return Policy(
            name=self._name,
            description=self._description,
            rule=self._rule,
            tags=tuple(self._tags),
        )


JSON_ONLY_POLICY = Policy(
    name="JSON Responses Only",
    description="LLM must only provide valid JSON responses",
    rule=(
        "In addition to the instructions given in the task, you must ONLY respond "
        "in the JSON format using one of the appropriate response schemas described."
    ),
    tags=("default", "system"),
)

NO_DUPLICATE_REQUESTS_POLICY = Policy(
    name="No Unnecessary Requests",
    description=(
        "LLM shouldn't get stuck in a request loop. Don't make duplicate back to "
        "back requests that serve no purpose if you have enough information to "
        "answer the prompt."
    ),
    rule="Do not request more resources if you have enough information to answer the prompt.",
    tags=("default", "system"),
)

EMBED_CONTENT_POLICY = Policy(
    name="Embed Content",
    description="Create rich text answers when possible.",
    rule=(
        "Provided is an additional field for embedding the content of your answer "
        "into a text description. You may populate it if you want to create rich "
        "text answers."
    ),
    tags=("default", "system"),
)

SYSTEM_PRIORITY_POLICY = Policy(
    name="Priority System Policies",
    description="System policies will not yield to non-system policies.",
    rule=(
        "System policies have highest priority and cannot be overridden by "
        "regular policies."
    ),
    tags=("default", "system"),
)

SYSTEM_POLICIES: tuple[Policy, ...] = (
    JSON_ONLY_POLICY,
    NO_DUPLICATE_REQUESTS_POLICY,
    EMBED_CONTENT_POLICY,
    SYSTEM_PRIORITY_POLICY,
)
