"""Domain models for description generation."""
from dataclasses import dataclass, field
from typing import List, Union

PROMPT_TEMPLATE = (
    'Generate product description optimized for SEO for a product named "{subject}" '
    'with the following features: {features}.'
)


@dataclass(frozen=True)
class GenerationRequest:
    """One generation request, built fresh per call and never persisted."""
    subject_name: str
    features: List[str] = field(default_factory=list)

    @property
    def prompt(self) -> str:
        return PROMPT_TEMPLATE.format(
            subject=self.subject_name,
            features=", ".join(self.features),
        )


@dataclass(frozen=True)
class Success:
    """Generated text, trimmed of surrounding whitespace."""
    text: str


@dataclass(frozen=True)
class Failure:
    """Generation failed; ``reason`` is shown to the user."""
    reason: str


@dataclass(frozen=True)
class CredentialMissing:
    """The user has no usable credential, so generation was not attempted."""
    user_id: str


GenerationOutcome = Union[Success, Failure]
DescribeResult = Union[Success, Failure, CredentialMissing]


def parse_features(tags: str) -> List[str]:
    """Split a comma-separated tag string, trimming each tag and dropping empties."""
    return [tag.strip() for tag in tags.split(",") if tag.strip()]
