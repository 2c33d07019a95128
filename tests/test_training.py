"""Tests for src/training.py."""

import numpy as np
import pandas as pd
import pytest

from src.config import default_config
from src.features import FEATURE_COLUMNS, LABEL_COLUMN, SPLIT_COLUMN, split_xy
from src.training import (
    build_params,
    fit_final_model,
    predict_proba,
    select_num_rounds,
    train_classifier,
)


def _feature_table(seed: int = 0, n_per_class: dict = None) -> pd.DataFrame:
    """Synthetic feature table where tumors have a bright third cluster."""
    n_per_class = n_per_class or {"train": 20, "val": 6, "test": 6}
    rng = np.random.default_rng(seed)
    rows = []
    for data_set, n in n_per_class.items():
        for label in (0, 1):
            for _ in range(n):
                feats = rng.normal(0.0, 1.0, size=len(FEATURE_COLUMNS))
                # c3_intensity separates the classes
                feats[FEATURE_COLUMNS.index("c3_intensity")] = (0.9 if label else 0.5) + rng.normal(0, 0.02)
                row = {SPLIT_COLUMN: data_set, LABEL_COLUMN: label}
                row.update(zip(FEATURE_COLUMNS, feats))
                rows.append(row)
    return pd.DataFrame(rows, columns=[SPLIT_COLUMN] + FEATURE_COLUMNS + [LABEL_COLUMN])


@pytest.fixture
def model_cfg():
    cfg = default_config()["model"]
    cfg["max_rounds"] = 40
    return cfg


class TestBuildParams:
    def test_params_from_config(self, model_cfg):
        params = build_params(model_cfg)
        assert params["objective"] == "binary:logistic"
        assert params["eval_metric"] == "error"
        assert params["eta"] == 0.01
        assert params["max_depth"] == 6
        assert params["seed"] == 1


class TestSelectNumRounds:
    def test_best_round_is_first_minimum(self, model_cfg):
        table = _feature_table()
        X_train, y_train = split_xy(table, ["train"])
        X_val, y_val = split_xy(table, ["val"])

        selection = select_num_rounds(
            X_train, y_train, X_val, y_val, build_params(model_cfg), max_rounds=40,
        )

        assert len(selection.validation_error) == 40
        assert len(selection.train_error) == 40
        assert 1 <= selection.best_round <= 40
        errors = selection.validation_error
        assert errors[selection.best_round - 1] == min(errors)
        assert all(e > min(errors) for e in errors[: selection.best_round - 1])


class TestFitFinalModel:
    def test_trains_requested_rounds(self, model_cfg):
        X, y = split_xy(_feature_table(), ["train", "val"])
        booster, train_error = fit_final_model(X, y, build_params(model_cfg), num_rounds=7)
        assert len(train_error) == 7
        assert booster.num_boosted_rounds() == 7
        prob = predict_proba(booster, X)
        assert prob.shape == (len(y),)
        assert np.all((prob >= 0.0) & (prob <= 1.0))

    def test_zero_rounds_rejected(self, model_cfg):
        X, y = split_xy(_feature_table(), ["train"])
        with pytest.raises(ValueError, match="num_rounds"):
            fit_final_model(X, y, build_params(model_cfg), num_rounds=0)


class TestTrainClassifier:
    def test_fixed_threshold_and_separable_data(self, model_cfg):
        table = _feature_table()
        model = train_classifier(table, model_cfg, {"threshold": 0.5, "threshold_policy": "fixed"})

        assert model.threshold == 0.5
        assert model.num_rounds >= 1
        assert model.feature_names == FEATURE_COLUMNS
        X_test, y_test = split_xy(table, ["test"])
        assert np.mean(model.predict(X_test) == y_test) >= 0.9

    def test_same_seed_same_predictions(self, model_cfg):
        table = _feature_table(seed=3)
        evaluation_cfg = {"threshold": 0.5, "threshold_policy": "fixed"}
        X_test, _ = split_xy(table, ["test"])

        a = train_classifier(table, model_cfg, evaluation_cfg)
        b = train_classifier(table, model_cfg, evaluation_cfg)

        assert a.num_rounds == b.num_rounds
        np.testing.assert_array_equal(a.predict_proba(X_test), b.predict_proba(X_test))

    def test_validation_tuned_threshold(self, model_cfg):
        model = train_classifier(
            _feature_table(seed=5), model_cfg,
            {"threshold": 0.5, "threshold_policy": "validation"},
        )
        assert 0.0 <= model.threshold <= 1.0

    def test_unknown_threshold_policy_raises(self, model_cfg):
        with pytest.raises(ValueError, match="threshold policy"):
            train_classifier(_feature_table(), model_cfg, {"threshold": 0.5, "threshold_policy": "magic"})
