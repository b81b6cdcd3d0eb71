"""
Pattern Certification - Data Models

Shared data models used across the system.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from fractions import Fraction
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple


CATEGORY_NAMES: Tuple[str, ...] = (
    "syntax",
    "structure",
    "output",
    "integration",
    "performance",
    "usability",
    "maintainability",
    "documentation",
)


# ============================================================================
# ENUMS
# ============================================================================

class Severity(Enum):
    """Issue severity."""
    CRITICAL = "critical"   # Structurally required for execution
    MAJOR = "major"         # Degrades usefulness
    MINOR = "minor"         # Style / documentation gap


class Priority(Enum):
    """Recommendation priority."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return {"critical": 4, "high": 3, "medium": 2, "low": 1}[self.value]


class Effort(Enum):
    """Estimated improvement effort."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Grade(Enum):
    """Letter grade derived from the overall score."""
    A = "A"
    B = "B"
    C = "C"
    D = "D"
    F = "F"

    @property
    def rank(self) -> int:
        return {"A": 5, "B": 4, "C": 3, "D": 2, "F": 1}[self.value]


class CertificationTier(Enum):
    """Certification tier, lowest to highest."""
    NONE = "none"
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"

    @property
    def rank(self) -> int:
        return ["none", "bronze", "silver", "gold", "platinum"].index(self.value)


class Trend(Enum):
    """Quality movement across recent history."""
    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    UNKNOWN = "unknown"


# ============================================================================
# PATTERN & CORPUS
# ============================================================================

def normalize_section_name(name: str) -> str:
    """Strip markdown header markers and whitespace, uppercase."""
    return re.sub(r"^#+\s*", "", name.strip()).strip().upper()


@dataclass(frozen=True)
class PatternSection:
    """A named text block of a pattern."""
    name: str
    body: str = ""

    @property
    def key(self) -> str:
        return normalize_section_name(self.name)


@dataclass(frozen=True)
class PatternDefinition:
    """A structured prompt template plus its declared capabilities."""
    pattern_id: str
    sections: Tuple[PatternSection, ...] = ()
    body: str = ""
    has_scoring: bool = False
    has_prioritization: bool = False

    def find_section(self, *keys: str) -> Optional[PatternSection]:
        """First section whose normalized name equals one of ``keys``."""
        wanted = {k.upper() for k in keys}
        for section in self.sections:
            if section.key in wanted:
                return section
        return None

    def find_section_containing(self, keyword: str) -> Optional[PatternSection]:
        """First section whose normalized name contains ``keyword``."""
        keyword = keyword.upper()
        for section in self.sections:
            if keyword in section.key:
                return section
        return None

    @property
    def section_names(self) -> List[str]:
        return [s.key for s in self.sections]

    @property
    def output_sections(self) -> List[str]:
        """Output section names declared in the OUTPUT block."""
        block = self.find_section("OUTPUT", "OUTPUT SECTIONS", "OUTPUT FORMAT")
        if block is None:
            return []
        names = []
        for line in block.body.splitlines():
            match = re.match(r"^\s*(?:[-*]|\d+\.|#{2,})\s+(.+?)\s*:?\s*$", line)
            if match:
                names.append(normalize_section_name(match.group(1)))
        return names


@dataclass(frozen=True)
class ExpectedOutputSchema:
    """Required output sections and an optional numeric score range."""
    sections: Tuple[str, ...] = ()
    score_range: Optional[Tuple[float, float]] = None


@dataclass(frozen=True)
class SampleCase:
    """One sample input and the output it is expected to produce."""
    sample_id: str
    input_text: str
    expected_output: ExpectedOutputSchema = field(default_factory=ExpectedOutputSchema)


@dataclass(frozen=True)
class SampleCorpus:
    """Ordered sample cases for one pattern."""
    pattern_id: str
    samples: Tuple[SampleCase, ...] = ()

    def __iter__(self) -> Iterator[SampleCase]:
        return iter(self.samples)

    def __len__(self) -> int:
        return len(self.samples)


# ============================================================================
# VALIDATION & TEST RESULTS
# ============================================================================

@dataclass(frozen=True)
class ValidationIssue:
    """A single finding from validation or testing."""
    severity: Severity
    category: str
    message: str
    suggestion: str = ""

    def to_dict(self) -> Dict:
        return {
            "severity": self.severity.value,
            "category": self.category,
            "message": self.message,
            "suggestion": self.suggestion,
        }


@dataclass
class ValidationResult:
    """Result of structural validation."""
    pattern_id: str
    issues: List[ValidationIssue]
    suggestions: List[str]
    compliance_checklist: Dict[str, bool]
    validation_score: int
    metrics: Dict[str, int] = field(default_factory=dict)

    @property
    def critical_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == Severity.CRITICAL)

    @property
    def is_valid(self) -> bool:
        return self.critical_count == 0

    def check(self, name: str) -> bool:
        """Outcome of a named check; checks that did not run count as failed."""
        return self.compliance_checklist.get(name, False)


@dataclass
class TestCaseResult:
    """Result of executing one sample."""
    __test__ = False

    sample_id: str
    passed: bool
    score: int
    execution_time_ms: float
    sections_matched: int
    sections_expected: int
    content_quality_flags: Dict[str, bool] = field(default_factory=dict)
    exceeded_time_budget: bool = False
    error: Optional[str] = None
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def coverage_ratio(self) -> Fraction:
        if self.error:
            return Fraction(0)
        if self.sections_expected == 0:
            return Fraction(1)
        return Fraction(self.sections_matched, self.sections_expected)

    @property
    def quality_ratio(self) -> Fraction:
        if not self.content_quality_flags:
            return Fraction(0)
        return Fraction(sum(self.content_quality_flags.values()), len(self.content_quality_flags))


@dataclass
class TestSuiteResult:
    """Result of running a pattern's whole sample corpus."""
    __test__ = False

    pattern_id: str
    cases: List[TestCaseResult]
    passed: bool
    pass_rate: float
    average_score: int
    max_execution_time_ms: float
    compatibility_checks: Dict[str, bool] = field(default_factory=dict)
    issues: List[ValidationIssue] = field(default_factory=list)

    @property
    def evaluated_cases(self) -> List[TestCaseResult]:
        return [c for c in self.cases if c.error is None]

    @property
    def errored_cases(self) -> List[TestCaseResult]:
        return [c for c in self.cases if c.error is not None]

    @property
    def slow_cases(self) -> List[TestCaseResult]:
        return [c for c in self.cases if c.exceeded_time_budget]


# ============================================================================
# ASSESSMENT
# ============================================================================

@dataclass(frozen=True)
class CategoryScores:
    """The eight category scores, each an int 0-100."""
    syntax: int
    structure: int
    output: int
    integration: int
    performance: int
    usability: int
    maintainability: int
    documentation: int

    @classmethod
    def from_mapping(cls, scores: Mapping[str, Optional[int]]) -> "CategoryScores":
        """
        Build from a partial mapping.

        Categories that are missing or None take the minimum observed
        sub-score, so no category is ever skipped.
        """
        observed = [int(v) for k, v in scores.items() if k in CATEGORY_NAMES and v is not None]
        floor = min(observed) if observed else 0
        values = {}
        for name in CATEGORY_NAMES:
            value = scores.get(name)
            value = floor if value is None else int(value)
            values[name] = max(0, min(100, value))
        return cls(**values)

    def to_dict(self) -> Dict[str, int]:
        return {name: getattr(self, name) for name in CATEGORY_NAMES}

    def items(self) -> List[Tuple[str, int]]:
        return [(name, getattr(self, name)) for name in CATEGORY_NAMES]

    def lowest(self) -> int:
        return min(getattr(self, name) for name in CATEGORY_NAMES)


@dataclass(frozen=True)
class Recommendation:
    """A ranked improvement action for one category."""
    category: str
    priority: Priority
    title: str
    description: str
    estimated_impact: int
    estimated_effort: Effort
    action_items: Tuple[str, ...] = ()
    resources: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "category": self.category,
            "priority": self.priority.value,
            "title": self.title,
            "description": self.description,
            "estimated_impact": self.estimated_impact,
            "estimated_effort": self.estimated_effort.value,
            "action_items": list(self.action_items),
            "resources": list(self.resources),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "Recommendation":
        return cls(
            category=data["category"],
            priority=Priority(data["priority"]),
            title=data["title"],
            description=data["description"],
            estimated_impact=int(data["estimated_impact"]),
            estimated_effort=Effort(data["estimated_effort"]),
            action_items=tuple(data.get("action_items", ())),
            resources=tuple(data.get("resources", ())),
        )


@dataclass(frozen=True)
class QualityWarning:
    """Non-blocking quality concern."""
    category: str
    message: str
    suggestion: str

    def to_dict(self) -> Dict:
        return {"category": self.category, "message": self.message, "suggestion": self.suggestion}


@dataclass(frozen=True)
class CertificationRequirement:
    """One named certification requirement and its outcome."""
    name: str
    met: bool
    threshold: float
    actual: float
    description: str

    def to_dict(self) -> Dict:
        return {
            "name": self.name,
            "met": self.met,
            "threshold": self.threshold,
            "actual": self.actual,
            "description": self.description,
        }


@dataclass(frozen=True)
class CertificationStatus:
    """Certification outcome with its requirement breakdown."""
    certified: bool
    tier: CertificationTier
    requirements: Tuple[CertificationRequirement, ...] = ()
    next_tier: Optional[CertificationTier] = None
    improvements_needed: Tuple[str, ...] = ()

    @property
    def requirements_met(self) -> int:
        return sum(1 for r in self.requirements if r.met)

    def to_dict(self) -> Dict:
        return {
            "certified": self.certified,
            "tier": self.tier.value,
            "requirements": [r.to_dict() for r in self.requirements],
            "next_tier": self.next_tier.value if self.next_tier else None,
            "improvements_needed": list(self.improvements_needed),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "CertificationStatus":
        return cls(
            certified=bool(data["certified"]),
            tier=CertificationTier(data["tier"]),
            requirements=tuple(CertificationRequirement(**r) for r in data.get("requirements", [])),
            next_tier=CertificationTier(data["next_tier"]) if data.get("next_tier") else None,
            improvements_needed=tuple(data.get("improvements_needed", ())),
        )


@dataclass(frozen=True)
class AssessmentRecord:
    """Immutable outcome of one assessment run."""
    pattern_id: str
    timestamp: datetime
    category_scores: CategoryScores
    overall_score: int
    grade: Grade
    meets_threshold: bool
    certification_tier: CertificationTier
    trend: Trend
    critical_issues: Tuple[Recommendation, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()
    certification: Optional[CertificationStatus] = None
    warnings: Tuple[QualityWarning, ...] = ()
    thresholds_version: str = ""
    weights_version: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serialisable dictionary."""
        return {
            "pattern_id": self.pattern_id,
            "timestamp": self.timestamp.isoformat(),
            "category_scores": self.category_scores.to_dict(),
            "overall_score": self.overall_score,
            "grade": self.grade.value,
            "meets_threshold": self.meets_threshold,
            "certification_tier": self.certification_tier.value,
            "trend": self.trend.value,
            "critical_issues": [r.to_dict() for r in self.critical_issues],
            "recommendations": [r.to_dict() for r in self.recommendations],
            "certification": self.certification.to_dict() if self.certification else None,
            "warnings": [w.to_dict() for w in self.warnings],
            "thresholds_version": self.thresholds_version,
            "weights_version": self.weights_version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AssessmentRecord":
        """Create from dictionary."""
        certification = data.get("certification")
        timestamp = datetime.fromisoformat(data["timestamp"])
        if timestamp.tzinfo is None:
            raise ValueError(f"Timestamp has no timezone: {data['timestamp']}")
        return cls(
            pattern_id=data["pattern_id"],
            timestamp=timestamp,
            category_scores=CategoryScores.from_mapping(data["category_scores"]),
            overall_score=int(data["overall_score"]),
            grade=Grade(data["grade"]),
            meets_threshold=bool(data["meets_threshold"]),
            certification_tier=CertificationTier(data["certification_tier"]),
            trend=Trend(data["trend"]),
            critical_issues=tuple(Recommendation.from_dict(r) for r in data.get("critical_issues", [])),
            recommendations=tuple(Recommendation.from_dict(r) for r in data.get("recommendations", [])),
            certification=CertificationStatus.from_dict(certification) if certification else None,
            warnings=tuple(QualityWarning(**w) for w in data.get("warnings", [])),
            thresholds_version=data.get("thresholds_version", ""),
            weights_version=data.get("weights_version", ""),
        )
