"""Four-step wizard state used by the UI."""

import enum
import logging

from app.core.errors import WizardError

logger = logging.getLogger(__name__)


class WizardStep(enum.IntEnum):
    """Steps in the order the user walks through them."""

    UPLOAD_DOCUMENTS = 1
    SELECT_TEMPLATE = 2
    GENERATE = 3
    RESULTS = 4

    @property
    def label(self) -> str:
        return _LABELS[self]


_LABELS = {
    WizardStep.UPLOAD_DOCUMENTS: "Upload security documents",
    WizardStep.SELECT_TEMPLATE: "Choose template",
    WizardStep.GENERATE: "Analyze code & generate",
    WizardStep.RESULTS: "Results",
}


class Wizard:
    """Tracks the current step and which steps are done.

    Moving forward is only possible by completing the current step;
    jumping back to an earlier or already completed step is always allowed.
    """

    def __init__(self) -> None:
        self.current: WizardStep = WizardStep.UPLOAD_DOCUMENTS
        self.completed: set[WizardStep] = set()

    def is_completed(self, step: WizardStep) -> bool:
        return step in self.completed

    def can_go_to(self, step: WizardStep) -> bool:
        return step <= self.current or step in self.completed

    def complete(self, step: WizardStep | None = None) -> WizardStep:
        """Mark a step as done and advance past it.

        Args:
            step: Step to complete; defaults to the current step.

        Returns:
            The new current step (the last step stays current).
        """
        step = WizardStep(step if step is not None else self.current)
        self.completed.add(step)

        if step < WizardStep.RESULTS:
            self.current = WizardStep(step + 1)
        else:
            self.current = step

        logger.info(f"Wizard step {step.value} completed, now at step {self.current.value}")
        return self.current

    def go_to(self, step: WizardStep | int) -> WizardStep:
        """Move to an earlier or already completed step.

        Raises:
            WizardError: If the step is ahead and not yet reachable.
        """
        try:
            target = WizardStep(step)
        except ValueError as e:
            raise WizardError(f"Unknown wizard step: {step}") from e

        if not self.can_go_to(target):
            raise WizardError(
                f"Cannot jump to step {target.value} ({target.label}) before completing step "
                f"{self.current.value} ({self.current.label})"
            )

        self.current = target
        return self.current

    def reset(self) -> None:
        """Return to the first step and forget completed steps."""
        self.current = WizardStep.UPLOAD_DOCUMENTS
        self.completed.clear()
        logger.info("Wizard reset")
