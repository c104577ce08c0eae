"""
Specification template generation for the implementation workflow.
"""

import re
from datetime import datetime, timezone

MAX_SLUG_LENGTH = 50

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(description: str) -> str:
    """Lowercase, dash-separated slug of at most MAX_SLUG_LENGTH characters."""
    slug = _NON_SLUG.sub("-", description.lower()).strip("-")
    return slug[:MAX_SLUG_LENGTH].rstrip("-")


def get_spec_file_name(description: str, fallback: str = "spec") -> str:
    """Spec filename derived from a feature description."""
    return f"{slugify(description) or fallback}.md"


def get_spec_path(description: str, specs_dir: str = "specs/", fallback: str = "spec") -> str:
    """Relative spec path inside the specs directory."""
    specs_dir = specs_dir.rstrip("/") + "/" if specs_dir else ""
    return f"{specs_dir}{get_spec_file_name(description, fallback)}"


def generate_spec_template(
    description: str,
    project_path: str,
    language_name: str,
    reviewers: list[str],
) -> str:
    """Markdown spec template for a new feature."""
    timestamp = datetime.now(timezone.utc).isoformat()

    review_sections = "".join(
        f"### {name} Review\n> [Will be populated after review]\n\n" for name in reviewers
    ) or "> No reviewers configured for this workflow.\n\n"

    return f"""# Implementation Spec: {description}

> Generated: {timestamp}
> Project: {project_path}
> Environment: {language_name}

## Overview

**Objective:** {description}

**Scope:** [Define what is in scope and out of scope]

## Requirements

### Functional Requirements

1. [Requirement 1]
2. [Requirement 2]
3. [Requirement 3]

### Non-Functional Requirements

- [ ] Performance: [Specify any performance requirements]
- [ ] Security: [Specify any security requirements]
- [ ] Compatibility: [Specify any compatibility requirements]

## Technical Design

### Architecture

[Describe the high-level architecture]

### Components

1. **[Component 1]**
   - Purpose:
   - Interface:

2. **[Component 2]**
   - Purpose:
   - Interface:

### Data Flow

[Describe how data flows through the system]

## Implementation Plan

### Phase 1: [Phase Name]
- [ ] Task 1
- [ ] Task 2

## Testing Strategy

### Unit Tests
- [ ] [Test case 1]
- [ ] [Test case 2]

### Integration Tests
- [ ] [Test case 1]

### Edge Cases
- [ ] [Edge case 1]

## Risks and Mitigations

| Risk | Impact | Mitigation |
|------|--------|------------|
| [Risk 1] | [Impact] | [Mitigation] |

## Open Questions

- [ ] [Question 1]

---

## Review Feedback

{review_sections}### Synthesis
> [Will be populated after reviews complete]
"""
