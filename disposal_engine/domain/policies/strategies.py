"""Assignment strategies — a closed set of weightings over the scoring model."""

from __future__ import annotations

from dataclasses import dataclass

from disposal_engine.domain.entities.assignment import AssignmentCandidate, MatchingAssessment
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.organization import Organization
from disposal_engine.domain.policies.scoring import sub_scores
from disposal_engine.domain.value_objects.enums import StrategyName

STRENGTH_THRESHOLD = 0.8
WEAKNESS_THRESHOLD = 0.4
SCORE_PRECISION = 4

_STRENGTH_TEXT = {
    "geographic": "Serves the package region",
    "capacity": "Ample free capacity",
    "experience": "Extensive track record",
    "performance": "Strong historical recovery",
    "availability": "Immediately available",
}
_WEAKNESS_TEXT = {
    "geographic": "Far from the package region",
    "capacity": "Heavily loaded",
    "experience": "Limited experience",
    "performance": "Weak historical recovery",
    "availability": "Limited availability",
}


@dataclass(frozen=True)
class ScoreWeights:
    geographic: float
    capacity: float
    experience: float
    performance: float
    availability: float

    def as_dict(self) -> dict[str, float]:
        return {
            "geographic": self.geographic,
            "capacity": self.capacity,
            "experience": self.experience,
            "performance": self.performance,
            "availability": self.availability,
        }

    def combine(self, scores: dict[str, float]) -> float:
        return sum(scores[dim] * weight for dim, weight in self.as_dict().items())


@dataclass(frozen=True)
class AssignmentStrategy:
    name: StrategyName
    description: str
    weights: ScoreWeights

    def assess(self, organization: Organization, package: CasePackage) -> MatchingAssessment:
        raw = sub_scores(organization, package)
        exact = self.weights.combine(raw)
        scores = {k: round(v, SCORE_PRECISION) for k, v in raw.items()}
        overall = round(exact, SCORE_PRECISION)
        strengths, weaknesses = describe_scores(scores)
        return MatchingAssessment(
            organization_id=organization.id,
            strategy=self.name.value,
            overall_score=overall,
            geographic_score=scores["geographic"],
            capacity_score=scores["capacity"],
            experience_score=scores["experience"],
            performance_score=scores["performance"],
            availability_score=scores["availability"],
            strengths=strengths,
            weaknesses=weaknesses,
            recommendation=recommendation_text(overall, strengths, weaknesses),
            exact_score=exact,
        )

    def rank(
        self, package: CasePackage, organizations: list[Organization]
    ) -> list[AssignmentCandidate]:
        """Score every organization and order best-first.

        Ties on overall score fall back to higher performance, then lower
        current load, then lower organization id.
        """
        candidates = []
        for org in organizations:
            assessment = self.assess(org, package)
            candidates.append(
                AssignmentCandidate(
                    organization_id=org.id,
                    organization_name=org.name,
                    score=assessment.overall_score,
                    exact_score=assessment.exact_score,
                    detail_scores=assessment.detail_scores(),
                    strengths=assessment.strengths,
                    weaknesses=assessment.weaknesses,
                    recommendation=assessment.recommendation,
                    current_load=org.current_load_percentage or 0.0,
                )
            )

        candidates.sort(
            key=lambda c: (
                -c.score,
                -c.detail_scores["performance"],
                c.current_load,
                c.organization_id,
            )
        )
        for index, candidate in enumerate(candidates, start=1):
            candidate.rank = index
        return candidates


def describe_scores(scores: dict[str, float]) -> tuple[list[str], list[str]]:
    strengths = [_STRENGTH_TEXT[k] for k, v in scores.items() if v > STRENGTH_THRESHOLD]
    weaknesses = [_WEAKNESS_TEXT[k] for k, v in scores.items() if v < WEAKNESS_THRESHOLD]
    return strengths, weaknesses


def recommendation_text(overall: float, strengths: list[str], weaknesses: list[str]) -> str:
    pct = overall * 100
    if overall >= 0.85:
        detail = f": {', '.join(strengths)}" if strengths else ""
        return f"Strongly recommended ({pct:.1f}% match){detail}"
    if overall >= 0.7:
        return f"Recommended ({pct:.1f}% match)"
    if overall >= 0.5:
        detail = f"; watch: {', '.join(weaknesses)}" if weaknesses else ""
        return f"Acceptable ({pct:.1f}% match){detail}"
    return f"Not recommended ({pct:.1f}% match)"


STRATEGIES: dict[StrategyName, AssignmentStrategy] = {
    StrategyName.INTELLIGENT: AssignmentStrategy(
        name=StrategyName.INTELLIGENT,
        description="Balanced composite favouring experience and performance",
        weights=ScoreWeights(
            geographic=0.20, capacity=0.20, experience=0.25, performance=0.25, availability=0.10,
        ),
    ),
    StrategyName.PERFORMANCE: AssignmentStrategy(
        name=StrategyName.PERFORMANCE,
        description="Prefers organizations with the best historical results",
        weights=ScoreWeights(
            geographic=0.05, capacity=0.15, experience=0.30, performance=0.40, availability=0.10,
        ),
    ),
    StrategyName.GEOGRAPHIC: AssignmentStrategy(
        name=StrategyName.GEOGRAPHIC,
        description="Prefers organizations serving the package region",
        weights=ScoreWeights(
            geographic=0.40, capacity=0.20, experience=0.20, performance=0.10, availability=0.10,
        ),
    ),
    StrategyName.LOAD_BALANCE: AssignmentStrategy(
        name=StrategyName.LOAD_BALANCE,
        description="Prefers the least loaded organizations",
        weights=ScoreWeights(
            geographic=0.10, capacity=0.40, experience=0.10, performance=0.10, availability=0.30,
        ),
    ),
}
