from anomalies import NO_ANOMALIES, scan_scores


def test_drop_is_flagged():
    findings = scan_scores([100, 60])
    assert findings == ["Test 2: significant drop of -40.0% (100 -> 60)"]


def test_improvement_is_flagged():
    findings = scan_scores([40, 60])
    assert findings == ["Test 2: significant improvement of +50.0% (40 -> 60)"]


def test_small_change_is_ignored():
    assert scan_scores([50, 51]) == [NO_ANOMALIES]


def test_exact_threshold_is_flagged():
    assert "drop" in scan_scores([100, 70])[0]


def test_zero_previous_score_is_skipped():
    assert scan_scores([0, 50]) == [NO_ANOMALIES]


def test_short_history():
    assert scan_scores([]) == [NO_ANOMALIES]
    assert scan_scores([42]) == [NO_ANOMALIES]


def test_multiple_events():
    findings = scan_scores([80, 40, 0, 30, 60])
    assert findings == [
        "Test 2: significant drop of -50.0% (80 -> 40)",
        "Test 3: significant drop of -100.0% (40 -> 0)",
        "Test 5: significant improvement of +100.0% (30 -> 60)",
    ]
