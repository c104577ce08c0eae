"""
Implementation workflow phases and state transitions.
"""

from enum import Enum


class ImplementPhase(str, Enum):
    """Phases in the implementation workflow, in workflow order."""
    INITIALIZED = "initialized"
    SPEC_CREATED = "spec_created"
    REVIEWS_PENDING = "reviews_pending"
    REVIEWS_COMPLETE = "reviews_complete"
    SPEC_REFINED = "spec_refined"
    TESTS_PENDING = "tests_pending"
    TESTS_CREATED = "tests_created"
    IMPLEMENTATION_PENDING = "implementation_pending"
    IMPLEMENTATION_COMPLETE = "implementation_complete"
    LINT_PENDING = "lint_pending"
    LINT_PASSED = "lint_passed"
    BUILD_PENDING = "build_pending"
    BUILD_PASSED = "build_passed"
    TESTS_RUN_PENDING = "tests_run_pending"
    TESTS_PASSED = "tests_passed"
    COMPLETE = "complete"
    FAILED = "failed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        """Whether no further transition can leave this phase."""
        return self in TERMINAL_PHASES


TERMINAL_PHASES = frozenset({
    ImplementPhase.COMPLETE,
    ImplementPhase.FAILED,
    ImplementPhase.ABORTED,
})

# Phases whose result is archived out of the active store
ARCHIVED_PHASES = frozenset({
    ImplementPhase.COMPLETE,
    ImplementPhase.ABORTED,
})


# Valid phase transitions. ABORTED is reached through abort(), and the
# FAILED -> *_PENDING recovery edge through retry(); neither is listed here.
VALID_TRANSITIONS: dict[ImplementPhase, frozenset[ImplementPhase]] = {
    ImplementPhase.INITIALIZED: frozenset({ImplementPhase.SPEC_CREATED}),
    ImplementPhase.SPEC_CREATED: frozenset({
        ImplementPhase.REVIEWS_PENDING,
        ImplementPhase.SPEC_REFINED,
    }),
    ImplementPhase.REVIEWS_PENDING: frozenset({
        ImplementPhase.REVIEWS_PENDING,
        ImplementPhase.REVIEWS_COMPLETE,
    }),
    ImplementPhase.REVIEWS_COMPLETE: frozenset({ImplementPhase.SPEC_REFINED}),
    ImplementPhase.SPEC_REFINED: frozenset({ImplementPhase.TESTS_PENDING}),
    ImplementPhase.TESTS_PENDING: frozenset({ImplementPhase.TESTS_CREATED}),
    ImplementPhase.TESTS_CREATED: frozenset({ImplementPhase.IMPLEMENTATION_PENDING}),
    ImplementPhase.IMPLEMENTATION_PENDING: frozenset({ImplementPhase.IMPLEMENTATION_COMPLETE}),
    ImplementPhase.IMPLEMENTATION_COMPLETE: frozenset({ImplementPhase.LINT_PENDING}),
    ImplementPhase.LINT_PENDING: frozenset({
        ImplementPhase.LINT_PASSED,
        ImplementPhase.FAILED,
    }),
    ImplementPhase.LINT_PASSED: frozenset({ImplementPhase.BUILD_PENDING}),
    ImplementPhase.BUILD_PENDING: frozenset({
        ImplementPhase.BUILD_PASSED,
        ImplementPhase.FAILED,
    }),
    ImplementPhase.BUILD_PASSED: frozenset({ImplementPhase.TESTS_RUN_PENDING}),
    ImplementPhase.TESTS_RUN_PENDING: frozenset({
        ImplementPhase.TESTS_PASSED,
        ImplementPhase.FAILED,
    }),
    ImplementPhase.TESTS_PASSED: frozenset({ImplementPhase.COMPLETE}),
    ImplementPhase.COMPLETE: frozenset(),
    ImplementPhase.FAILED: frozenset(),
    ImplementPhase.ABORTED: frozenset(),
}


def can_transition(current_phase: ImplementPhase, next_phase: ImplementPhase) -> bool:
    """Check if moving from current_phase to next_phase is a legal transition."""
    allowed = VALID_TRANSITIONS.get(current_phase)
    if allowed is None:
        return False
    return next_phase in allowed
