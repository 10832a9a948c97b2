"""
Tests for the EM estimator: initialization, split, oracle fit, EM step and train.
"""
import logging

import numpy as np
import pytest
from scipy import stats
from score_gmm import (
    MixtureModel,
    ScoreDataset,
    MIN_VARIANCE,
    SPLIT_RATIO,
    generate_labeled_scores,
    fit_single_gaussian,
    split,
    set_class_priors,
    fit_oracle,
    em_step,
    train,
    TrainingHistory,
)


@pytest.fixture
def two_class_scores():
    """400 scores per class from N(-1, 0.25) and N(+1, 0.25)."""
    return generate_labeled_scores([-1.0, 1.0], [0.25, 0.25], [400, 400], seed=3)


def _model(means, variances, priors):
    model = MixtureModel(len(means), priors)
    model.set_means(means)
    model.set_variances(variances)
    return model


class TestFitSingleGaussian:
    """Tests for fit_single_gaussian."""

    def test_all_components_collapse_to_sample_moments(self, two_class_scores):
        model = MixtureModel(2, [0.3, 0.7])
        fit_single_gaussian(model, two_class_scores)

        z = two_class_scores.scores
        assert np.allclose(model.mean, np.mean(z))
        assert np.allclose(model.var, np.var(z))
        assert np.allclose(model.log_weight, 0.0)

    def test_labels_are_ignored(self):
        z = [0.0, 1.0, 2.0, 3.0]
        a = MixtureModel(2, [0.5, 0.5])
        b = MixtureModel(2, [0.5, 0.5])
        fit_single_gaussian(a, ScoreDataset(z, [0, 0, 1, 1]))
        fit_single_gaussian(b, ScoreDataset(z, [1, 0, 1, 0]))
        assert np.allclose(a.mean, b.mean)
        assert np.allclose(a.var, b.var)

    def test_constant_scores_hit_variance_floor(self):
        model = MixtureModel(3, [1 / 3] * 3)
        fit_single_gaussian(model, ScoreDataset([0.7] * 10))
        assert np.allclose(model.mean, 0.7)
        assert np.allclose(model.var, MIN_VARIANCE)

    def test_empty_dataset_raises(self):
        with pytest.raises(ValueError):
            fit_single_gaussian(MixtureModel(2, [0.5, 0.5]), ScoreDataset([]))


class TestSplit:
    """Tests for split."""

    def test_two_way_split_is_symmetric(self):
        model = MixtureModel(2, [0.5, 0.5])
        fit_single_gaussian(model, ScoreDataset([-1.0, 0.0, 1.0, 4.0]))
        mu, var = model.mean[0], model.var[0]

        split(model)

        offset = SPLIT_RATIO * np.sqrt(var)
        assert model.mean[0] == pytest.approx(mu + offset)
        assert model.mean[1] == pytest.approx(mu - offset)
        assert np.allclose(model.var, var)
        assert np.allclose(model.log_weight, np.log(0.5))

    def test_split_adds_log_half_to_current_weight(self):
        model = _model([2.0, 2.0], [1.0, 1.0], [0.8, 0.2])
        split(model)
        assert np.allclose(model.log_weight, np.log(0.8) + np.log(0.5))

    def test_multi_way_split_spreads_means(self):
        model = MixtureModel(3, [1 / 3] * 3)
        fit_single_gaussian(model, ScoreDataset([0.0, 2.0]))
        split(model)

        offset = SPLIT_RATIO * np.sqrt(1.0)
        assert np.allclose(model.mean, [1.0 + offset, 1.0, 1.0 - offset])
        assert np.allclose(model.weights, 1 / 3)
        assert np.allclose(model.var, 1.0)

    def test_split_is_deterministic(self, two_class_scores):
        a = MixtureModel(2, [0.5, 0.5])
        b = MixtureModel(2, [0.5, 0.5])
        for model in (a, b):
            fit_single_gaussian(model, two_class_scores)
            split(model)
        assert np.array_equal(a.mean, b.mean)
        assert np.array_equal(a.var, b.var)


class TestSetClassPriors:
    """Tests for set_class_priors."""

    def test_two_components(self):
        model = MixtureModel(2, [0.5, 0.5])
        set_class_priors(model, 0.3)
        assert np.allclose(model.weights, [0.3, 0.7])

    def test_remaining_mass_is_uniform(self):
        model = MixtureModel(3, [1 / 3] * 3)
        set_class_priors(model, 0.4)
        assert np.allclose(model.weights, [0.4, 0.3, 0.3])

    @pytest.mark.parametrize("prior0", [0.0, 1.0, -0.1, 1.5, float("nan")])
    def test_prior_out_of_range(self, prior0):
        with pytest.raises(ValueError):
            set_class_priors(MixtureModel(2, [0.5, 0.5]), prior0)

    def test_single_component_raises(self):
        with pytest.raises(ValueError):
            set_class_priors(MixtureModel(1, [1.0]), 0.5)


class TestFitOracle:
    """Tests for fit_oracle."""

    def test_per_class_moments(self):
        data = ScoreDataset([1.0, 2.0, 3.0, -4.0, -6.0], [0, 0, 0, 1, 1])
        model = MixtureModel(2, [0.6, 0.4])
        fit_oracle(model, data)

        assert np.allclose(model.mean, [2.0, -5.0])
        assert np.allclose(model.var, [np.var([1.0, 2.0, 3.0]), 1.0])
        assert np.allclose(model.weights, [0.6, 0.4])

    def test_empty_class_falls_back(self):
        data = ScoreDataset([1.0, 3.0], [0, 0])
        model = MixtureModel(3, [1 / 3] * 3)
        fit_oracle(model, data)
        assert np.allclose(model.mean, [2.0, 0.0, 0.0])
        assert np.allclose(model.var, [1.0, MIN_VARIANCE, MIN_VARIANCE])

    def test_single_point_class_hits_floor(self):
        data = ScoreDataset([1.0, 3.0, 10.0], [0, 0, 1])
        model = MixtureModel(2, [0.5, 0.5])
        fit_oracle(model, data)
        assert model.mean[1] == pytest.approx(10.0)
        assert model.var[1] == pytest.approx(MIN_VARIANCE)

    def test_recovers_generating_parameters(self):
        data = generate_labeled_scores([2.0, -3.0], [0.5, 1.5], [20000, 20000], seed=11)
        model = MixtureModel(2, [0.5, 0.5])
        fit_oracle(model, data)
        assert np.allclose(model.mean, [2.0, -3.0], atol=0.05)
        assert np.allclose(model.var, [0.5, 1.5], atol=0.05)

    def test_requires_labels(self):
        with pytest.raises(ValueError):
            fit_oracle(MixtureModel(2, [0.5, 0.5]), ScoreDataset([0.0, 1.0]))

    def test_label_out_of_range(self):
        with pytest.raises(ValueError):
            fit_oracle(MixtureModel(2, [0.5, 0.5]), ScoreDataset([0.0, 1.0], [0, 2]))


class TestEMStep:
    """Tests for em_step."""

    def test_matches_manual_update(self):
        z = np.array([-2.0, -1.2, -0.3, 0.4, 1.1, 2.5])
        model = _model([-1.0, 1.0], [0.8, 0.6], [0.4, 0.6])

        joint = np.stack([
            0.4 * stats.norm.pdf(z, -1.0, np.sqrt(0.8)),
            0.6 * stats.norm.pdf(z, 1.0, np.sqrt(0.6)),
        ], axis=1)
        r = joint / joint.sum(axis=1, keepdims=True)
        nk = r.sum(axis=0)
        mu = (r * z[:, None]).sum(axis=0) / nk
        var = (r * (z[:, None] - mu[None, :]) ** 2).sum(axis=0) / nk

        returned_nk = em_step(model, ScoreDataset(z))

        assert np.allclose(returned_nk, nk)
        assert np.allclose(model.mean, mu)
        assert np.allclose(model.var, var)
        assert np.allclose(model.weights, [0.4, 0.6])

    def test_responsibilities_come_from_previous(self, two_class_scores):
        """The parameters in `model` before the step do not matter."""
        previous = _model([-0.5, 0.5], [1.0, 1.0], [0.5, 0.5])

        expected = previous.snapshot()
        em_step(expected, two_class_scores)

        model = _model([7.0, -3.0], [0.2, 9.0], [0.5, 0.5])
        em_step(model, two_class_scores, previous)

        assert np.allclose(model.mean, expected.mean)
        assert np.allclose(model.var, expected.var)
        # previous is left untouched
        assert np.allclose(previous.mean, [-0.5, 0.5])

    def test_component_without_mass(self, two_class_scores):
        model = _model([-1.0, 1.0], [0.25, 0.25], [0.5, 0.5])
        model.set_log_weights([0.0, -np.inf])

        nk = em_step(model, two_class_scores)

        assert nk[1] == 0.0
        assert model.mean[1] == 0.0
        assert model.var[1] == MIN_VARIANCE
        assert model.mean[0] == pytest.approx(np.mean(two_class_scores.scores))

    def test_reestimate_weights(self, two_class_scores):
        model = _model([-1.0, 1.0], [0.25, 0.25], [0.9, 0.1])
        nk = em_step(model, two_class_scores, reestimate_weights=True)
        assert np.allclose(model.weights, nk / len(two_class_scores))
        assert model.weights.sum() == pytest.approx(1.0)
        assert model.weights[0] < 0.9

    def test_log_likelihood_is_monotone(self, two_class_scores):
        """Fixed-weight EM never decreases the log-likelihood."""
        model = MixtureModel(2, [0.5, 0.5])
        fit_single_gaussian(model, two_class_scores)
        split(model)
        set_class_priors(model, 0.5)

        lls = [model.log_likelihood(two_class_scores)]
        for _ in range(40):
            em_step(model, two_class_scores)
            lls.append(model.log_likelihood(two_class_scores))

        lls = np.asarray(lls)
        assert np.all(np.diff(lls) >= -1e-9 * np.abs(lls[1:]))
        assert lls[-1] > lls[0]

    def test_variance_floor_on_degenerate_data(self):
        data = ScoreDataset([1.0] * 20 + [5.0] * 20)
        model = _model([1.0, 5.0], [1.0, 1.0], [0.5, 0.5])
        for _ in range(5):
            em_step(model, data)
            assert np.all(model.var >= MIN_VARIANCE)
        assert np.allclose(model.var, MIN_VARIANCE)
        assert np.allclose(model.mean, [1.0, 5.0])


class TestTrain:
    """Tests for the train pipeline."""

    def test_history_and_fixed_weights(self, two_class_scores):
        model = MixtureModel(2, [0.5, 0.5])
        history = train(model, two_class_scores, 0.3, n_iter=7)

        assert isinstance(history, TrainingHistory)
        assert history.n_iter == 7
        assert len(history.square_errors) == 7
        assert np.all(np.isnan(history.square_errors))
        assert np.isfinite(history.init_log_likelihood)
        assert history.final_log_likelihood == history.log_likelihoods[-1]
        assert np.allclose(model.weights, [0.3, 0.7])

    def test_zero_iterations(self, two_class_scores):
        model = MixtureModel(2, [0.5, 0.5])
        history = train(model, two_class_scores, 0.5, n_iter=0)
        assert history.n_iter == 0
        assert history.final_log_likelihood == history.init_log_likelihood
        assert model.mean[0] > model.mean[1]

    def test_square_error_against_oracle(self, two_class_scores):
        oracle = MixtureModel(2, [0.5, 0.5])
        fit_oracle(oracle, two_class_scores)
        model = MixtureModel(2, [0.5, 0.5])
        history = train(model, two_class_scores, 0.5, n_iter=5, oracle=oracle)

        assert np.isfinite(history.init_square_error)
        assert np.all(np.isfinite(history.square_errors))
        assert history.square_errors[-1] == pytest.approx(model.square_error(oracle))

    @pytest.mark.parametrize("prior0", [0.0, 1.0, 2.0])
    def test_invalid_prior_fails_before_fitting(self, two_class_scores, prior0):
        model = MixtureModel(2, [0.5, 0.5])
        with pytest.raises(ValueError):
            train(model, two_class_scores, prior0)
        assert np.allclose(model.mean, 0.0)

    def test_invalid_arguments(self, two_class_scores):
        with pytest.raises(ValueError):
            train(MixtureModel(1, [1.0]), two_class_scores, 0.5)
        with pytest.raises(ValueError):
            train(MixtureModel(2, [0.5, 0.5]), two_class_scores, 0.5, n_iter=-1)
        with pytest.raises(ValueError):
            train(MixtureModel(2, [0.5, 0.5]), ScoreDataset([]), 0.5)
        with pytest.raises(ValueError):
            train(MixtureModel(2, [0.5, 0.5]), two_class_scores, 0.5, oracle=MixtureModel(3, [1 / 3] * 3))

    def test_variance_floor_holds_for_constant_scores(self):
        model = MixtureModel(2, [0.5, 0.5])
        train(model, ScoreDataset([2.0] * 50), 0.5, n_iter=10)
        assert np.all(model.var >= MIN_VARIANCE)

    def test_logs_progress(self, two_class_scores, caplog):
        caplog.set_level(logging.DEBUG, logger="score_gmm.em_method")
        train(MixtureModel(2, [0.5, 0.5]), two_class_scores, 0.5, n_iter=3)
        messages = [rec.getMessage() for rec in caplog.records]
        assert any("Single Gaussian: log-likelihood" in m for m in messages)
        assert sum("EM iteration" in m for m in messages) == 3
        assert any("EM finished after 3 iterations" in m for m in messages)
