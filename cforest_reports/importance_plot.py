"""
Importance Plot Script

This script turns the per-model importance vectors into one long table,
derives each model's noise-floor threshold (absolute value of its most
negative importance), flags the predictors above it and draws one panel
per model.
"""

import os

import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns

from .config import FIG_DPI, FIG_FORMATS, VARIABLE_LABELS, IMPORTANT_COLOR, NOISE_COLOR


COMPARISONS = {
    'ge': lambda importance, threshold: importance >= threshold,
    'gt': lambda importance, threshold: importance > threshold,
}


def apply_report_style():
    """
    Set matplotlib defaults for the report figures.

    Sans-serif fonts, no top/right spines, frameless legends and
    embeddable (Type 42) fonts in PDF output.
    """
    plt.rcParams.update({
        'font.family': 'sans-serif',
        'font.sans-serif': ['Arial', 'Helvetica', 'DejaVu Sans'],
        'font.size': 10,
        'axes.titlesize': 11,
        'axes.labelsize': 10,
        'axes.spines.top': False,
        'axes.spines.right': False,
        'legend.frameon': False,
        'pdf.fonttype': 42,
        'savefig.facecolor': 'white',
    })


def reshape_importances(results, labels=None):
    """
    Stack named importance vectors into one long table.

    Parameters:
    -----------
    results : dict
        {model_id: pd.Series of importance indexed by predictor}
    labels : dict, optional
        {model_id: facet label}; defaults to the model id

    Returns:
    --------
    pd.DataFrame
        Columns Model, Label, Variable, Importance; one row per
        (model, predictor) pair, models in input order
    """
    if not results:
        raise ValueError("No importance results to reshape")

    labels = labels or {}
    reference = None
    frames = []

    for model, importance in results.items():
        importance = pd.Series(importance)
        if importance.index.duplicated().any():
            dupes = importance.index[importance.index.duplicated()].tolist()
            raise ValueError(f"Duplicated predictor(s) in model '{model}': {dupes}")
        if reference is None:
            reference = set(importance.index)
        elif set(importance.index) != reference:
            raise ValueError(
                f"Model '{model}' scores different predictors: "
                f"missing {sorted(reference - set(importance.index))}, "
                f"extra {sorted(set(importance.index) - reference)}"
            )
        frames.append(pd.DataFrame({
            'Model': model,
            'Label': labels.get(model, model),
            'Variable': importance.index.astype(str),
            'Importance': importance.to_numpy(dtype=float),
        }))

    return pd.concat(frames, ignore_index=True)


def compute_thresholds(long_df):
    """Per-model threshold: abs(min(Importance))."""
    return long_df.groupby('Model', sort=False)['Importance'].min().abs()


def flag_important(long_df, thresholds, comparison='ge'):
    """
    Add each row's model threshold and an Important flag.

    Parameters:
    -----------
    long_df : pd.DataFrame
        Output of reshape_importances
    thresholds : pd.Series
        Threshold per model
    comparison : str, default='ge'
        'ge' flags importance >= threshold, 'gt' flags importance > threshold

    Returns:
    --------
    pd.DataFrame
        Copy with Threshold and Important columns
    """
    if comparison not in COMPARISONS:
        raise ValueError(f"comparison must be one of {sorted(COMPARISONS)}, got '{comparison}'")

    flagged = long_df.copy()
    flagged['Threshold'] = flagged['Model'].map(thresholds)
    if flagged['Threshold'].isna().any():
        missing = sorted(flagged.loc[flagged['Threshold'].isna(), 'Model'].unique())
        raise ValueError(f"No threshold for model(s): {missing}")
    flagged['Important'] = COMPARISONS[comparison](flagged['Importance'], flagged['Threshold'])
    return flagged


def plot_importance_facets(flagged_df, title=None, col_wrap=2, height=3.5):
    """
    Draw one importance panel per model.

    Points are coloured by the Important flag and each panel carries a
    dashed vertical line at its model's threshold.

    Parameters:
    -----------
    flagged_df : pd.DataFrame
        Output of flag_important
    title : str, optional
        Figure title
    col_wrap : int, default=2
        Panels per row
    height : float, default=3.5
        Panel height in inches

    Returns:
    --------
    seaborn.FacetGrid
        The grid; grid.figure can be passed to save_figure
    """
    required = ['Model', 'Label', 'Variable', 'Importance', 'Threshold', 'Important']
    missing = [col for col in required if col not in flagged_df.columns]
    if missing:
        raise ValueError(f"Plot data is missing column(s): {missing}")

    plot_df = flagged_df.copy()
    plot_df['Predictor'] = plot_df['Variable'].map(lambda v: VARIABLE_LABELS.get(v, v))
    plot_df['Important'] = plot_df['Important'].map({True: 'Yes', False: 'No'})

    counts = plot_df.groupby('Model', sort=False)['Variable'].nunique()
    if counts.nunique() != 1:
        raise ValueError(f"Models have different numbers of predictors: {counts.to_dict()}")

    panel_order = list(dict.fromkeys(plot_df['Label']))
    predictor_order = sorted(plot_df['Predictor'].unique())
    # Shared numeric rows keep every panel and hue subset aligned
    plot_df['Position'] = plot_df['Predictor'].map({name: i for i, name in enumerate(predictor_order)})
    thresholds = plot_df.groupby('Label', sort=False)['Threshold'].first()

    grid = sns.FacetGrid(
        plot_df, col='Label', col_order=panel_order, col_wrap=min(col_wrap, len(panel_order)),
        hue='Important', hue_order=['Yes', 'No'],
        palette={'Yes': IMPORTANT_COLOR, 'No': NOISE_COLOR},
        sharex=False, height=height, aspect=1.2,
    )
    grid.map_dataframe(sns.scatterplot, x='Importance', y='Position', s=40)

    for label, ax in grid.axes_dict.items():
        ax.axvline(thresholds[label], color='grey', linestyle='--', linewidth=1)
        ax.set_yticks(range(len(predictor_order)))
        ax.set_yticklabels(predictor_order)

    grid.set_axis_labels("Conditional permutation importance", "", clear_inner=False)
    grid.set_titles("{col_name}")
    grid.add_legend(title="Important")

    if title:
        grid.figure.subplots_adjust(top=0.88)
        grid.figure.suptitle(title)

    return grid


def save_figure(fig, save_base, formats=FIG_FORMATS, dpi=FIG_DPI):
    """
    Save a figure once per format and close it.

    Parameters:
    -----------
    fig : matplotlib.figure.Figure
        Figure to save
    save_base : str
        Output path without extension
    formats : tuple, default=FIG_FORMATS
        File extensions, e.g. ('png', 'pdf')
    dpi : int, default=FIG_DPI
        Resolution for raster formats

    Returns:
    --------
    list
        Paths written
    """
    directory = os.path.dirname(save_base)
    if directory:
        os.makedirs(directory, exist_ok=True)

    paths = []
    for fmt in formats:
        path = f"{save_base}.{fmt}"
        fig.savefig(path, dpi=dpi, bbox_inches='tight')
        paths.append(path)
    plt.close(fig)
    return paths
