"""
Pain Survey Report Module

This module contains the stages of the variable importance reports:
- Data loading and recoding
- Decision tree visualisation
- Random forests and conditional permutation importance
- Faceted importance plots
- The report pipeline
"""

from .errors import SchemaError, ModelingError

from .data_loading import (
    load_survey_data,
    validate_columns
)

from .recoding import (
    recode_factors,
    select_report_columns,
    complete_cases,
    encode_predictors
)

from .tree_analysis import (
    fit_decision_tree,
    tree_rules,
    plot_decision_tree
)

from .random_forest_analysis import (
    check_model_data,
    fit_conditional_forest,
    forest_oob_r2,
    run_forest_grid,
    model_id,
    model_label
)

from .variable_importance import (
    association_pvalue,
    conditioning_variables,
    conditional_permutation_importance
)

from .importance_plot import (
    apply_report_style,
    reshape_importances,
    compute_thresholds,
    flag_important,
    plot_importance_facets,
    save_figure
)

__all__ = [
    # Errors
    'SchemaError',
    'ModelingError',
    # Data
    'load_survey_data',
    'validate_columns',
    'recode_factors',
    'select_report_columns',
    'complete_cases',
    'encode_predictors',
    # Decision tree
    'fit_decision_tree',
    'tree_rules',
    'plot_decision_tree',
    # Random Forest
    'check_model_data',
    'fit_conditional_forest',
    'forest_oob_r2',
    'run_forest_grid',
    'model_id',
    'model_label',
    # Importance
    'association_pvalue',
    'conditioning_variables',
    'conditional_permutation_importance',
    # Plotting
    'apply_report_style',
    'reshape_importances',
    'compute_thresholds',
    'flag_important',
    'plot_importance_facets',
    'save_figure',
]
