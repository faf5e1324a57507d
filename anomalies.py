from typing import Iterable, List, Sequence

from schemas import ProgressView

CHANGE_THRESHOLD = 0.30
NO_ANOMALIES = "No significant score changes detected."


def scan_scores(scores: Sequence[int]) -> List[str]:
    """
    Flag consecutive score changes of 30% or more.

    ``scores`` runs oldest to newest. A pair whose earlier score is zero
    has no percentage change and is skipped.
    """
    findings = []
    for index in range(1, len(scores)):
        prev, curr = scores[index - 1], scores[index]
        if prev <= 0:
            continue
        change = (curr - prev) / prev
        if abs(change) < CHANGE_THRESHOLD:
            continue
        kind = "drop" if change < 0 else "improvement"
        findings.append(
            f"Test {index + 1}: significant {kind} of {change * 100:+.1f}% ({prev} -> {curr})"
        )
    return findings or [NO_ANOMALIES]


def scan_history(records: Iterable[ProgressView]) -> List[str]:
    ordered = sorted(records, key=lambda r: (r.test_timestamp, r.id))
    return scan_scores([r.cmas_score for r in ordered])
