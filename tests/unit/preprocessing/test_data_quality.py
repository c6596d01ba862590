import pytest

from src.feature_engineering.preprocessing.data_quality import (
    DUPLICATE_ROWS,
    HIGH,
    LOW,
    MEDIUM,
    MISSING_VALUES,
    OUTLIERS,
    ConstantDimension,
    DataQualityAssessor,
    QualityDimension,
    assess_quality,
)
from src.feature_engineering.preprocessing.outlier_detection import (
    OutlierDetector,
    calculate_quartile,
    iqr_bounds,
    is_numeric_cell,
)


@pytest.mark.unit
def test_missing_and_duplicate_rows():
    report = assess_quality([[1, 2], [1, 2], [None, 3]])

    assert report.completeness == pytest.approx(5 / 6)
    assert report.uniqueness == pytest.approx(2 / 3)
    assert [issue.type for issue in report.issues] == [MISSING_VALUES, DUPLICATE_ROWS]
    assert report.issues[0].count == 1
    assert report.issues[0].severity == HIGH
    assert report.issues[1].count == 1


@pytest.mark.unit
def test_default_dimension_scores_and_overall():
    report = assess_quality([[1.0, "a"], [2.0, "b"]])

    assert report.accuracy == 0.9
    assert report.consistency == 0.95
    assert report.timeliness == 0.9
    assert report.validity == 0.9
    assert report.completeness == 1.0
    assert report.uniqueness == 1.0
    assert report.overall == pytest.approx((1 + 0.9 + 0.95 + 0.9 + 0.9 + 1) / 6)
    assert report.issues == []


@pytest.mark.unit
def test_empty_matrix_is_fully_complete_and_unique():
    report = assess_quality([])
    assert report.completeness == 1.0
    assert report.uniqueness == 1.0
    assert report.issues == []


@pytest.mark.unit
def test_empty_strings_count_as_missing():
    report = assess_quality([["", 1], ["x", 2], ["y", 3], ["z", 4], ["w", 5]])
    missing = report.issues_of_type(MISSING_VALUES)[0]
    assert missing.count == 1
    assert missing.severity == MEDIUM


@pytest.mark.unit
def test_nan_rows_are_detected_as_duplicates():
    report = assess_quality([[float("nan"), 1], [float("nan"), 1]])
    assert report.issues_of_type(DUPLICATE_ROWS)[0].count == 1


@pytest.mark.unit
def test_outlier_issue_names_the_feature():
    report = assess_quality([[1], [2], [3], [4], [100]], feature_names=["revenue"])

    outliers = report.issues_of_type(OUTLIERS)
    assert len(outliers) == 1
    assert outliers[0].description == "1 outliers detected in revenue"
    assert outliers[0].severity == HIGH


@pytest.mark.unit
def test_rare_outlier_has_low_severity():
    rows = [[v] for v in range(1, 20)] + [[500]]
    outliers = assess_quality(rows).issues_of_type(OUTLIERS)

    assert outliers[0].count == 1
    assert outliers[0].severity == LOW
    assert "feature_0" in outliers[0].description


@pytest.mark.unit
def test_assessment_does_not_mutate_input():
    matrix = [[1, None], [1, None]]
    assess_quality(matrix)
    assert matrix == [[1, None], [1, None]]


@pytest.mark.unit
def test_custom_dimension_overrides_default():
    class RangeValidity(QualityDimension):
        name = "validity"

        def score(self, rows, feature_names):
            values = [row[0] for row in rows]
            return sum(1 for v in values if 0 <= v <= 10) / len(values)

    report = DataQualityAssessor({"validity": RangeValidity()}).assess([[1], [5], [50], [7]])

    assert report.validity == pytest.approx(0.75)
    assert report.accuracy == 0.9


@pytest.mark.unit
def test_report_to_dict():
    report = assess_quality([[1], [1]], dimensions={"accuracy": ConstantDimension("accuracy", 0.5)})
    data = report.to_dict()

    assert data["accuracy"] == 0.5
    assert data["issues"][0]["type"] == DUPLICATE_ROWS


@pytest.mark.unit
def test_quartiles_interpolate_linearly():
    assert calculate_quartile([1, 2, 3, 4, 100], 0.25) == 2.0
    assert calculate_quartile([1, 2, 3, 4], 0.75) == pytest.approx(3.25)
    assert iqr_bounds([1, 2, 3, 4, 100]) == (-1.0, 7.0)


@pytest.mark.unit
def test_outlier_detector_ignores_non_numeric_cells():
    detector = OutlierDetector()
    counts = detector.detect_outliers([["a", True], ["b", False]])
    assert counts == {}

    assert not is_numeric_cell(True)
    assert not is_numeric_cell(float("nan"))
    assert is_numeric_cell(3)


@pytest.mark.unit
def test_columns_sharing_a_name_are_reported_separately():
    report = assess_quality([[1, 1], [2, 2], [3, 3], [4, 4], [100, 100]], feature_names=["x", "x"])

    outliers = report.issues_of_type(OUTLIERS)
    assert len(outliers) == 2
    assert [issue.description for issue in outliers] == ["1 outliers detected in x"] * 2


@pytest.mark.unit
def test_outlier_counts_are_keyed_by_column_index():
    counts = OutlierDetector().detect_outliers([[1, "a", 1], [2, "b", 2], [3, "c", 3], [4, "d", 4], [100, "e", 4]])
    assert counts == {0: 1, 2: 0}


@pytest.mark.unit
def test_unhashable_cells_do_not_break_assessment():
    report = assess_quality([[[1, 2], 1], [[1, 2], 1], [[3], 2]])

    assert report.issues_of_type(DUPLICATE_ROWS)[0].count == 1
    assert report.uniqueness == pytest.approx(2 / 3)
