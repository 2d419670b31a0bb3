"""
Main Report Pipeline

This script runs one pain-survey report end to end:
1. Load the survey table and recode categorical columns
2. Keep the report's target and predictors, then the complete cases
3. Fit a decision tree for visualisation
4. Fit four forests ({500, 2000} trees x two seeds) and score predictors
   by conditional permutation importance
5. Plot the four importance vectors with their noise-floor thresholds
6. Save tables, figures and a run summary
"""

import os
import json

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving plots
import pandas as pd

from .config import REPORTS, N_TREES, MTRY, CONDITIONAL_THRESHOLD, OUTPUT_ROOT
from .data_loading import load_survey_data
from .errors import SchemaError
from .recoding import recode_factors, select_report_columns, complete_cases, encode_predictors
from .tree_analysis import fit_decision_tree, tree_rules, plot_decision_tree
from .random_forest_analysis import check_model_data, run_forest_grid, model_id, model_label
from .importance_plot import (
    apply_report_style,
    reshape_importances,
    compute_thresholds,
    flag_important,
    plot_importance_facets,
    save_figure,
)


class ReportPipeline:
    """Pipeline for one pain-survey report."""

    def __init__(self, report_id, data_path, output_dir=None, n_trees=None, seeds=None,
                 mtry=MTRY, threshold=CONDITIONAL_THRESHOLD):
        """
        Initialize the report pipeline.

        Parameters:
        -----------
        report_id : str
            Key of REPORTS ('pain_behaviour' or 'ppt')
        data_path : str
            Path to the survey CSV file
        output_dir : str, optional
            Output folder. Defaults to OUTPUT_ROOT/<report_id>.
        n_trees : list, optional
            Tree counts; defaults to N_TREES
        seeds : list, optional
            Seeds; defaults to the report's configured seeds
        mtry : int, default=MTRY
            Candidate predictors per split
        threshold : float, default=CONDITIONAL_THRESHOLD
            Association cut-off for conditioning predictors
        """
        if report_id not in REPORTS:
            raise ValueError(f"Unknown report '{report_id}'. Choose from: {sorted(REPORTS)}")

        self.report_id = report_id
        self.report = REPORTS[report_id]
        self.data_path = data_path
        self.output_dir = output_dir or os.path.join(OUTPUT_ROOT, report_id)
        self.n_trees = list(n_trees or N_TREES)
        self.seeds = list(seeds or self.report['seeds'])
        for name, values in (('n_trees', self.n_trees), ('seeds', self.seeds)):
            if len(set(values)) != len(values):
                raise ValueError(f"{name} must not repeat values, got {values}")
        self.mtry = mtry
        self.threshold = threshold

        os.makedirs(self.output_dir, exist_ok=True)

        # Storage for results
        self.df_raw = None
        self.df_model = None
        self.X = None
        self.y = None
        self.categorical = []
        self.tree = None
        self.importances = {}
        self.oob_scores = {}
        self.importance_table = None
        self.summary = {}

    def _output_path(self, suffix):
        return os.path.join(self.output_dir, f"{self.report_id}_{suffix}")

    def load_data(self):
        """Load the raw survey table."""
        self.df_raw = load_survey_data(self.data_path)
        self.summary['n_rows'] = len(self.df_raw)
        return self.df_raw

    def prepare_data(self):
        """
        Recode, select the report's columns and keep the complete cases.

        Returns:
        --------
        pd.DataFrame
            Complete-case table with [target] + predictors
        """
        print("\n" + "=" * 60)
        print("Preparing Data")
        print("=" * 60)

        if self.df_raw is None:
            raise ValueError("Data must be loaded first. Call load_data() before prepare_data().")

        target = self.report['target']
        predictors = self.report['predictors']

        recoded = recode_factors(self.df_raw)
        selected = select_report_columns(recoded, target, predictors)
        self.df_model, n_dropped = complete_cases(selected)

        X_raw = self.df_model[predictors]
        if not pd.api.types.is_numeric_dtype(self.df_model[target]):
            raise SchemaError(
                f"Target column '{target}' must be numeric, found dtype {self.df_model[target].dtype}"
            )
        self.y = self.df_model[target].astype(float)
        check_model_data(X_raw, self.y)
        self.X = encode_predictors(X_raw)
        self.categorical = [col for col in predictors
                            if isinstance(X_raw[col].dtype, pd.CategoricalDtype)]

        print(f"Target: {target}")
        print(f"Predictors ({len(predictors)}): {predictors}")
        print(f"Categorical predictors: {self.categorical}")

        self.summary.update({
            'report': self.report_id,
            'target': target,
            'predictors': predictors,
            'n_complete_cases': len(self.df_model),
            'n_dropped': n_dropped,
        })
        return self.df_model

    def run_tree(self):
        """Fit and save the visualisation tree."""
        self.tree = fit_decision_tree(self.X, self.y)

        rules = tree_rules(self.tree, self.X.columns)
        with open(self._output_path('tree_rules.txt'), 'w') as f:
            f.write(rules)

        fig = plot_decision_tree(self.tree, list(self.X.columns),
                                 title=f"Decision tree: {self.report['title']}")
        paths = save_figure(fig, self._output_path('tree'))
        print(f"Saved tree figure: {paths}")

        self.summary['tree'] = {
            'depth': int(self.tree.get_depth()),
            'leaves': int(self.tree.get_n_leaves()),
        }
        return self.tree

    def run_forests(self):
        """Fit every (tree count, seed) forest and score its predictors."""
        self.importances, self.oob_scores = run_forest_grid(
            self.X, self.y, self.n_trees, self.seeds,
            mtry=self.mtry, threshold=self.threshold, categorical=self.categorical,
        )
        self.summary['oob_r2'] = self.oob_scores
        return self.importances

    def plot_importances(self):
        """
        Build the long importance table and draw the faceted plot.

        Returns:
        --------
        pd.DataFrame
            Long table with Threshold and Important columns
        """
        print("\n" + "=" * 60)
        print("Plotting Variable Importance")
        print("=" * 60)

        labels = {model_id(n, s): model_label(n, s) for n in self.n_trees for s in self.seeds}
        long_df = reshape_importances(self.importances, labels=labels)
        thresholds = compute_thresholds(long_df)
        self.importance_table = flag_important(long_df, thresholds,
                                               comparison=self.report['comparison'])
        self.importance_table.to_csv(self._output_path('importance.csv'), index=False)

        grid = plot_importance_facets(self.importance_table,
                                      title=f"Variable importance: {self.report['title']}")
        paths = save_figure(grid.figure, self._output_path('importance'))
        print(f"Saved importance figure: {paths}")

        self.summary['thresholds'] = {model: float(value) for model, value in thresholds.items()}
        self.summary['important'] = {
            model: group.loc[group['Important'], 'Variable'].tolist()
            for model, group in self.importance_table.groupby('Model', sort=False)
        }
        return self.importance_table

    def generate_report(self):
        """Print a terminal summary of the run."""
        print("\n" + "=" * 60)
        print(f"REPORT: {self.report['title']}")
        print("=" * 60)
        print(f"Rows loaded: {self.summary.get('n_rows')}")
        print(f"Complete cases: {self.summary.get('n_complete_cases')}")

        for model, threshold in self.summary.get('thresholds', {}).items():
            print(f"\n{model}")
            print(f"  OOB R^2: {self.oob_scores.get(model, float('nan')):.4f}")
            print(f"  Threshold: {threshold:.4f}")
            print(f"  Important: {self.summary['important'].get(model, [])}")

        print("\n" + "=" * 60)
        print(f"All results saved to: {self.output_dir}")
        print("=" * 60)

    def run_full_pipeline(self):
        """Run every stage and write run_summary.json."""
        apply_report_style()

        self.load_data()
        self.prepare_data()
        self.run_tree()
        self.run_forests()
        self.plot_importances()
        self.generate_report()

        summary_path = os.path.join(self.output_dir, 'run_summary.json')
        with open(summary_path, 'w') as f:
            json.dump(self.summary, f, indent=2, default=str)

        print(f"\n✓ Report complete! Results saved to: {self.output_dir}")
        return self.summary


def main(argv=None):
    """Main entry point."""
    import argparse

    parser = argparse.ArgumentParser(description='Run a pain-survey variable importance report')
    parser.add_argument('report', choices=sorted(REPORTS), help='Report to run')
    parser.add_argument('data_path', type=str, help='Path to the survey CSV file')
    parser.add_argument('--output-dir', type=str, default=None,
                        help=f'Output folder (default: {OUTPUT_ROOT}/<report>)')
    parser.add_argument('--n-trees', type=int, nargs='+', default=None,
                        help=f'Tree counts (default: {N_TREES})')
    parser.add_argument('--seeds', type=int, nargs='+', default=None,
                        help='Seeds (default: the report\'s configured seeds)')
    parser.add_argument('--mtry', type=int, default=MTRY,
                        help=f'Candidate predictors per split (default: {MTRY})')

    args = parser.parse_args(argv)

    pipeline = ReportPipeline(
        args.report,
        args.data_path,
        output_dir=args.output_dir,
        n_trees=args.n_trees,
        seeds=args.seeds,
        mtry=args.mtry,
    )
    pipeline.run_full_pipeline()


if __name__ == "__main__":
    main()
