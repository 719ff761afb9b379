from __future__ import annotations


class NotFound(LookupError):
    """Raised when a template, certificate, font or asset does not exist."""


class InvalidInput(ValueError):
    """Raised when a payload is rejected before any mutation happens."""


class ConstraintViolation(RuntimeError):
    """Raised when a write would break a uniqueness rule."""


class BackgroundAssetError(RuntimeError):
    """Raised when a render cannot proceed because the page background is unreadable."""

    def __init__(self, template_id: str | None, reference: str | None, reason: str):
        self.template_id = template_id
        self.reference = reference
        self.reason = reason
        super().__init__(
            f"Background image unreadable for template={template_id} "
            f"ref={_short_ref(reference)}: {reason}"
        )


def _short_ref(reference: str | None) -> str:
    if not reference:
        return "<empty>"
    if reference.startswith("data:"):
        return reference[:32] + "..."
    return reference
