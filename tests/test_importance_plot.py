import os

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from cforest_reports.importance_plot import (
    apply_report_style,
    reshape_importances,
    compute_thresholds,
    flag_important,
    plot_importance_facets,
    save_figure,
)


PREDICTORS = ['Ancestry', 'Sex', 'Education', 'Employment', 'Anxiety', 'Depression', 'PCS']


@pytest.fixture
def four_models():
    rng = np.random.default_rng(0)
    return {
        f"ntree={n}, seed={s}": pd.Series(rng.normal(0, 1, len(PREDICTORS)), index=PREDICTORS)
        for n in (500, 2000) for s in (7534, 597)
    }


def _flagged(results, comparison='ge'):
    long_df = reshape_importances(results)
    return flag_important(long_df, compute_thresholds(long_df), comparison=comparison)


def test_reshape_has_one_row_per_pair(four_models):
    long_df = reshape_importances(four_models)

    assert len(long_df) == len(PREDICTORS) * len(four_models)
    assert not long_df.duplicated(['Model', 'Variable']).any()
    assert list(long_df['Model'].unique()) == list(four_models)
    pairs = set(zip(long_df['Model'], long_df['Variable']))
    assert pairs == {(m, v) for m in four_models for v in PREDICTORS}


def test_reshape_uses_labels(four_models):
    labels = {key: key.upper() for key in four_models}

    long_df = reshape_importances(four_models, labels=labels)

    assert set(long_df['Label']) == set(labels.values())


def test_reshape_rejects_mismatched_predictors(four_models):
    key = next(iter(four_models))
    four_models[key] = four_models[key].drop('PCS')

    with pytest.raises(ValueError, match="different predictors"):
        reshape_importances(dict(reversed(list(four_models.items()))))


def test_reshape_rejects_duplicated_predictor():
    dup = pd.Series([0.1, 0.2], index=['PCS', 'PCS'])

    with pytest.raises(ValueError, match="Duplicated"):
        reshape_importances({'m': dup})


def test_reshape_rejects_empty_results():
    with pytest.raises(ValueError):
        reshape_importances({})


def test_thresholds_are_abs_of_minimum(four_models):
    thresholds = compute_thresholds(reshape_importances(four_models))

    for model, importance in four_models.items():
        assert thresholds[model] == pytest.approx(abs(importance.min()))


@pytest.mark.parametrize("comparison", ['ge', 'gt'])
def test_flagged_predictors_clear_their_model_threshold(four_models, comparison):
    flagged = _flagged(four_models, comparison)

    for model, group in flagged.groupby('Model'):
        threshold = abs(four_models[model].min())
        assert (group.loc[group['Important'], 'Importance'] >= threshold).all()
        assert (group.loc[~group['Important'], 'Importance'] <= threshold).all()


def test_ge_and_gt_differ_only_at_equality():
    results = {'m': pd.Series([-0.5, 0.5, 0.1], index=['a', 'b', 'c'])}

    ge = _flagged(results, 'ge').set_index('Variable')['Important']
    gt = _flagged(results, 'gt').set_index('Variable')['Important']

    assert ge['b']
    assert not gt['b']
    assert not ge['c'] and not gt['c']


def test_flag_important_rejects_unknown_comparison(four_models):
    long_df = reshape_importances(four_models)

    with pytest.raises(ValueError, match="comparison"):
        flag_important(long_df, compute_thresholds(long_df), comparison='lt')


def test_plot_has_one_panel_and_dashed_line_per_model(four_models):
    flagged = _flagged(four_models)

    grid = plot_importance_facets(flagged, title="Variable importance")

    assert len(grid.axes_dict) == 4
    thresholds = compute_thresholds(reshape_importances(four_models))
    for model, ax in zip(four_models, grid.axes.flat):
        dashed = [line for line in ax.get_lines() if line.get_linestyle() == '--']
        assert len(dashed) == 1
        assert dashed[0].get_xdata()[0] == pytest.approx(thresholds[model])
        assert ax.get_title() == model
        assert ax.get_xlabel() == "Conditional permutation importance"
    plt.close(grid.figure)


def test_plot_rejects_missing_columns(four_models):
    long_df = reshape_importances(four_models)

    with pytest.raises(ValueError, match="Threshold"):
        plot_importance_facets(long_df)


def test_save_figure_writes_png_and_pdf(tmp_path, four_models):
    grid = plot_importance_facets(_flagged(four_models))
    base = os.path.join(str(tmp_path), "figures", "importance")

    paths = save_figure(grid.figure, base)

    assert paths == [base + ".png", base + ".pdf"]
    for path in paths:
        assert os.path.getsize(path) > 0


def test_apply_report_style_sets_rcparams():
    with plt.rc_context():
        apply_report_style()

        assert plt.rcParams['axes.spines.top'] is False
        assert plt.rcParams['pdf.fonttype'] == 42
