"""
Improvement Strategies and Grading Helpers

Per-category improvement strategies, reference resources, the grade scale
and effort bands used when building recommendations.
"""

from typing import Dict, List

from ..models import Effort, Grade


# ============================================================================
# IMPROVEMENT STRATEGIES (first three become action items)
# ============================================================================

IMPROVEMENT_STRATEGIES: Dict[str, List[str]] = {
    "syntax": [
        "Review and fix markdown formatting issues",
        "Ensure all required sections are present and properly formatted",
        "Validate pattern file structure against template",
        "Check for proper input placeholder usage",
    ],
    "structure": [
        "Enhance identity and purpose section with more detail",
        "Add more comprehensive steps with clear instructions",
        "Improve output section structure and organization",
        "Implement proper scoring and prioritization systems",
    ],
    "output": [
        "Test pattern with more diverse sample inputs",
        "Improve output format consistency and clarity",
        "Add more detailed analysis sections",
        "Enhance scoring and recommendation quality",
    ],
    "integration": [
        "Ensure compatibility with registry system",
        "Verify export system integration works properly",
        "Test pattern chaining functionality",
        "Validate command structure compliance",
    ],
    "performance": [
        "Optimize pattern execution time",
        "Reduce prompt size to cut processing time",
        "Tighten output instructions to avoid oversized responses",
        "Split long analyses into chained patterns",
    ],
    "usability": [
        "Simplify pattern usage and instructions",
        "Add examples of expected output",
        "Add better error messages and guidance",
        "Define a clear prioritization scheme for findings",
    ],
    "maintainability": [
        "Use consistent header formatting throughout",
        "Follow the standard section layout",
        "Split oversized sections into focused ones",
        "Keep identity and purpose separate from instructions",
    ],
    "documentation": [
        "Add comprehensive usage examples",
        "Expand the identity and purpose description",
        "Provide troubleshooting guidance",
        "Include best practices and guidelines",
    ],
}

RECOMMENDED_RESOURCES: Dict[str, List[str]] = {
    "syntax": ["Pattern Template Guide", "Markdown Formatting Best Practices", "Syntax Validation Tools"],
    "structure": ["Pattern Structure Guidelines", "Content Organization Best Practices", "Section Writing Guide"],
    "output": ["Output Format Standards", "Sample Input/Output Examples", "Quality Assessment Criteria"],
    "integration": ["Integration Testing Guide", "Registry System Documentation", "Export System API"],
    "performance": ["Performance Optimization Guide", "Benchmarking Tools", "Efficiency Best Practices"],
    "usability": ["User Experience Guidelines", "Usability Testing Methods", "Interface Design Principles"],
    "maintainability": ["Code Organization Standards", "Documentation Guidelines", "Maintenance Best Practices"],
    "documentation": ["Documentation Templates", "Writing Style Guide", "API Documentation Standards"],
}

ACTION_ITEM_COUNT = 3


def get_action_items(category: str) -> List[str]:
    """Top improvement strategies for a category."""
    return IMPROVEMENT_STRATEGIES.get(category, [])[:ACTION_ITEM_COUNT]


def get_resources(category: str) -> List[str]:
    return RECOMMENDED_RESOURCES.get(category, ["General Quality Guidelines"])


# ============================================================================
# GRADE SCALE
# ============================================================================

GRADE_THRESHOLDS = [
    (90, Grade.A),
    (80, Grade.B),
    (70, Grade.C),
    (60, Grade.D),
]


def score_to_grade(score: int) -> Grade:
    """
    Map an overall score to a letter grade.

    Args:
        score: Integer overall score (0-100)

    Returns:
        A >= 90, B 80-89, C 70-79, D 60-69, otherwise F
    """
    for threshold, grade in GRADE_THRESHOLDS:
        if score >= threshold:
            return grade
    return Grade.F


# ============================================================================
# EFFORT BANDS
# ============================================================================

def estimate_effort(gap: int) -> Effort:
    """Effort from the gap between a category score and its minimum."""
    if gap <= 10:
        return Effort.LOW
    if gap <= 25:
        return Effort.MEDIUM
    return Effort.HIGH
