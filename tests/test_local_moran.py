"""Tests for local Moran's I (LISA)."""

from itertools import permutations

import numpy as np
import pandas as pd
import pytest

from lisasmith.objects.spatialweights import SpatialWeights
from lisasmith.primitives.autocorrelation import morans_i
from lisasmith.primitives.classification import Quadrant, UnitStatus
from lisasmith.primitives.local_moran import (
    LocalMoranRecord,
    LocalMoranResult,
    local_association,
)
from lisasmith.primitives.weights import knn_weights
from lisasmith.utils.errors import ParameterError, PreconditionViolation


class TestDecomposition:
    """Local statistics must add up to the global coefficient."""

    def test_sum_equals_global_on_lattice(self, random_values, lattice_w):
        lisa = local_association(random_values, lattice_w)
        moran = morans_i(random_values, lattice_w)

        assert np.sum(lisa.Is) == pytest.approx(moran.I, rel=1e-9, abs=1e-12)
        assert lisa.global_I == pytest.approx(moran.I, rel=1e-9, abs=1e-12)

    def test_sum_equals_global_on_asymmetric_knn(self):
        rng = np.random.RandomState(7)
        coords = rng.rand(40, 2) * 100
        values = rng.gamma(2.0, 3.0, size=40)
        w = knn_weights(coords, k=4).transform("W")

        lisa = local_association(values, w)
        moran = morans_i(values, w)

        assert np.sum(lisa.Is) == pytest.approx(moran.I, rel=1e-9, abs=1e-12)

    def test_clustered_values_have_positive_sum(self, clustered_values, lattice_w):
        lisa = local_association(clustered_values, lattice_w)
        assert np.sum(lisa.Is) > 0.3


class TestToyScenario:
    """Units 1 and 2 adjacent, unit 3 isolated, x = [10, 10, 5]."""

    @pytest.fixture
    def toy_weights(self):
        return SpatialWeights.from_neighbors({1: [2], 2: [1], 3: []}, style="W")

    def test_local_values(self, toy_weights):
        lisa = local_association([10.0, 10.0, 5.0], toy_weights)

        assert lisa[1].I == pytest.approx(1.0 / 6.0)
        assert lisa[2].I == pytest.approx(1.0 / 6.0)
        assert np.nansum(lisa.Is) == pytest.approx(1.0 / 3.0)

    def test_partial_sum_matches_global(self, toy_weights):
        x = [10.0, 10.0, 5.0]
        lisa = local_association(x, toy_weights)
        moran = morans_i(x, toy_weights)

        # n / S0 = 3 / 2
        assert moran.I == pytest.approx(0.5)
        assert lisa.global_I == pytest.approx(moran.I)
        assert lisa[1].I + lisa[2].I == pytest.approx(moran.I * toy_weights.s0 / 3)

    def test_isolated_unit_is_undefined(self, toy_weights):
        lisa = local_association([10.0, 10.0, 5.0], toy_weights)
        record = lisa[3]

        assert record.status is UnitStatus.UNDEFINED
        assert np.isnan(record.I)
        assert np.isnan(record.lag)
        assert np.isnan(record.p_value)
        assert record.quadrant is None
        assert record.significant is False

        for key in (1, 2):
            assert lisa[key].status is UnitStatus.OK
            assert np.isfinite(lisa[key].p_value)
            assert lisa[key].quadrant is Quadrant.HH


class TestMoments:
    """Closed-form moments against exhaustive permutation."""

    @staticmethod
    def _permutation_moments(values, w, unit):
        W = w.sparse.toarray()
        mean = values.mean()
        ss = np.sum((values - mean) ** 2)
        stats = []
        for order in permutations(range(len(values))):
            c = values[list(order)] - mean
            stats.append(c[unit] * (W[unit] @ c) / ss)
        stats = np.array(stats)
        return stats.mean(), stats.var()

    def test_randomization_moments_match_permutations(self, path_w):
        values = np.array([1.0, 3.0, 4.0, 8.0, 15.0])
        lisa = local_association(values, path_w)

        for unit in range(5):
            mean, var = self._permutation_moments(values, path_w, unit)
            assert lisa.EI[unit] == pytest.approx(mean, rel=1e-9, abs=1e-12)
            assert lisa.VI[unit] == pytest.approx(var, rel=1e-9, abs=1e-12)

    def test_expected_value_depends_only_on_weights(self, path_w):
        lisa = local_association([2.0, 9.0, 4.0, 4.0, 7.0], path_w)
        # row-standardized: E[I_i] = -1 / (n (n - 1))
        np.testing.assert_allclose(lisa.EI, -1.0 / 20.0)

    def test_normality_null_changes_variance_only(self, random_values, lattice_w):
        rand = local_association(random_values, lattice_w, null="randomization")
        norm = local_association(random_values, lattice_w, null="normality")

        np.testing.assert_allclose(rand.Is, norm.Is)
        np.testing.assert_allclose(rand.EI, norm.EI)
        assert not np.allclose(rand.VI, norm.VI)
        assert np.all(np.isfinite(norm.z_scores))
        assert norm.null == "normality"

    def test_p_values_are_two_sided(self, random_values, lattice_w):
        from scipy import stats

        lisa = local_association(random_values, lattice_w)
        expected = 2 * (1 - stats.norm.cdf(np.abs(lisa.z_scores)))
        np.testing.assert_allclose(lisa.p_values, expected, atol=1e-12)


class TestClassification:
    """Quadrants follow the signs of the centered value and its lag."""

    def test_quadrants_match_signs(self, random_values, lattice_w):
        lisa = local_association(random_values, lattice_w)

        for c, lag, quadrant in zip(lisa.centered, lisa.lag, lisa.quadrants):
            if c > 0 and lag > 0:
                assert quadrant is Quadrant.HH
            elif c < 0 and lag < 0:
                assert quadrant is Quadrant.LL
            else:
                assert quadrant is Quadrant.HL_LH

    def test_quadrants_ignore_significance(self, clustered_values, lattice_w):
        strict = local_association(clustered_values, lattice_w, alpha=1e-9)
        loose = local_association(clustered_values, lattice_w, alpha=0.5)

        assert list(strict.quadrants) == list(loose.quadrants)
        assert strict.significant.sum() <= loose.significant.sum()

    def test_corner_units_are_hh_and_ll(self, clustered_values, lattice_w):
        lisa = local_association(clustered_values, lattice_w)
        assert lisa[0].quadrant is Quadrant.LL
        assert lisa[24].quadrant is Quadrant.HH

    def test_bonferroni_threshold_applied_uniformly(self, clustered_values, lattice_w):
        lisa = local_association(clustered_values, lattice_w, correction="bonferroni")

        assert lisa.threshold == pytest.approx(0.05 / 25)
        np.testing.assert_array_equal(lisa.significant, lisa.p_values <= 0.05 / 25)

    def test_bonferroni_with_explicit_m(self, clustered_values, lattice_w):
        lisa = local_association(
            clustered_values, lattice_w, correction="bonferroni", m=5
        )
        assert lisa.threshold == pytest.approx(0.01)

    def test_significance_nesting(self, clustered_values, lattice_w):
        for alpha in (0.01, 0.05, 0.1):
            nominal = local_association(clustered_values, lattice_w, alpha=alpha)
            corrected = local_association(
                clustered_values, lattice_w, alpha=alpha, correction="bonferroni"
            )
            assert np.all(nominal.significant[corrected.significant])


class TestResultMapping:
    """LocalMoranResult behaves like a mapping and a table."""

    def test_keys_follow_weights_order(self, path_w):
        lisa = local_association([2.0, 9.0, 4.0, 4.0, 7.0], path_w)

        assert isinstance(lisa, LocalMoranResult)
        assert list(lisa) == [0, 1, 2, 3, 4]
        assert len(lisa) == 5
        assert isinstance(lisa[2], LocalMoranRecord)
        with pytest.raises(KeyError):
            lisa[99]

    def test_mapping_attribute_is_aligned_by_key(self):
        w = SpatialWeights.from_neighbors(
            {"a": ["b"], "b": ["a", "c"], "c": ["b", "d"], "d": ["c"]}
        ).transform("W")
        aligned = local_association([1.0, 2.0, 8.0, 9.0], w)
        keyed = local_association({"d": 9.0, "c": 8.0, "b": 2.0, "a": 1.0}, w)
        series = local_association(
            pd.Series([9.0, 1.0, 2.0, 8.0], index=["d", "a", "b", "c"]), w
        )

        np.testing.assert_allclose(aligned.Is, keyed.Is)
        np.testing.assert_allclose(aligned.Is, series.Is)
        assert keyed["d"].quadrant is Quadrant.HH

    def test_to_frame(self, random_values, lattice_w):
        frame = local_association(random_values, lattice_w).to_frame()

        assert list(frame.columns) == [
            "I", "EI", "VI", "z", "p", "lag", "quadrant", "significant", "status",
        ]
        assert frame.index.name == "id"
        assert len(frame) == 25
        assert set(frame["quadrant"]) <= {"HH", "LL", "HL/LH"}
        assert set(frame["status"]) == {"ok"}

    def test_repr(self, random_values, lattice_w):
        assert "LocalMoranResult(n=25" in repr(local_association(random_values, lattice_w))


class TestPreconditions:
    """Batch-level problems fail before any computation."""

    def test_zero_variance(self, lattice_w):
        with pytest.raises(PreconditionViolation, match="zero variance"):
            local_association(np.full(25, 3.0), lattice_w)

    def test_length_mismatch(self, lattice_w):
        with pytest.raises(PreconditionViolation, match="length"):
            local_association(np.arange(24, dtype=float), lattice_w)

    def test_missing_key(self, path_w):
        with pytest.raises(PreconditionViolation, match="keys"):
            local_association({0: 1.0, 1: 2.0, 2: 3.0, 3: 4.0}, path_w)

    def test_non_finite_values(self, path_w):
        with pytest.raises(PreconditionViolation, match="finite"):
            local_association([1.0, np.nan, 3.0, 4.0, 5.0], path_w)

    def test_binary_weights_rejected(self, random_values, lattice_binary):
        with pytest.raises(PreconditionViolation, match="row-standardized"):
            local_association(random_values, lattice_binary)

    def test_transform_flag(self, random_values, lattice_binary, lattice_w):
        transformed = local_association(random_values, lattice_binary, transform=True)
        direct = local_association(random_values, lattice_w)
        np.testing.assert_allclose(transformed.Is, direct.Is)

    def test_unknown_null(self, random_values, lattice_w):
        with pytest.raises(ParameterError, match="null"):
            local_association(random_values, lattice_w, null="bootstrap")

    def test_isolated_unit_in_larger_batch(self):
        neighbors = {i: [i - 1, i + 1] for i in range(1, 9)}
        neighbors[0] = [1]
        neighbors[9] = [8]
        neighbors[10] = []
        w = SpatialWeights.from_neighbors(
            neighbors, ids=list(range(11))
        ).transform("W")
        values = np.array([3.0, 5.0, 4.0, 9.0, 12.0, 11.0, 2.0, 1.0, 6.0, 7.0, 8.0])

        lisa = local_association(values, w)

        assert lisa[10].status is UnitStatus.UNDEFINED
        others = lisa.status != UnitStatus.UNDEFINED
        assert others.sum() == 10
        assert np.all(np.isfinite(lisa.p_values[others]))
        assert np.all(lisa.status[others] == UnitStatus.OK)


class TestDegenerateUnits:
    """Units with zero null variance are flagged, not raised."""

    def test_zero_null_variance_is_degenerate(self):
        # complete graph: I_i is the same under every permutation
        neighbors = {i: [j for j in range(4) if j != i] for i in range(4)}
        w = SpatialWeights.from_neighbors(neighbors).transform("W")

        lisa = local_association([1.0, 1.0, 0.0, 0.0], w)

        assert np.all(lisa.status == UnitStatus.DEGENERATE)
        for key in lisa:
            assert lisa[key].status is UnitStatus.DEGENERATE
            assert np.isnan(lisa[key].p_value)
            assert np.isnan(lisa[key].z_score)
            assert lisa[key].significant is False
        assert np.isfinite(lisa.Is).all()
