"""
Report Configuration

Constants shared by the pain-survey reports:
- Input schema and recoding maps
- Forest hyperparameters (tree counts, mtry, subsample fraction)
- Per-report target, predictors, seeds and threshold comparison
- Output locations and figure settings
"""

import os


# Input schema (one row per subject)
RAW_COLUMNS = [
    'ID', 'Race', 'Sex', 'Education', 'Employment', 'Assets',
    'Anxiety', 'Depression', 'PCS', 'PPT', 'APBQ_F', 'APBQ_M',
]

ID_COLUMN = 'ID'

# Raw string -> level. Keys are matched after stripping whitespace.
ANCESTRY_MAP = {
    'White': 'European',
    'Black': 'African',
    'Black or African American': 'African',
    'Asian': 'Asian',
    'Hispanic': 'Latino',
    'Latino': 'Latino',
    'Other': 'Other',
    'Multiracial': 'Other',
}

SEX_MAP = {
    'F': 'Female',
    'Female': 'Female',
    'M': 'Male',
    'Male': 'Male',
}

EDUCATION_LEVELS = [
    'Less than high school',
    'High school',
    'Some college',
    'Bachelor',
    'Graduate',
]

EMPLOYMENT_LEVELS = [
    'Full-time',
    'Part-time',
    'Unemployed',
    'Student',
    'Retired',
]

# Forest settings
N_TREES = [500, 2000]
MTRY = 3
SUBSAMPLE_FRACTION = 0.632
CONDITIONAL_THRESHOLD = 0.2

# Decision tree (visualisation only)
TREE_MAX_DEPTH = 3
TREE_MIN_SAMPLES_LEAF = 10

REPORTS = {
    'pain_behaviour': {
        'title': 'Appropriate pain behaviour (APBQ-F)',
        'target': 'APBQ_F',
        'predictors': [
            'Ancestry', 'Sex', 'Education', 'Employment',
            'Anxiety', 'Depression', 'PCS',
        ],
        'seeds': [7534, 597],
        'comparison': 'ge',
    },
    'ppt': {
        'title': 'Pressure pain tolerance (PPT)',
        'target': 'PPT',
        'predictors': [
            'Ancestry', 'Sex', 'Education', 'Employment', 'Assets',
            'Anxiety', 'Depression', 'PCS', 'APBQ_F', 'APBQ_M',
        ],
        'seeds': [3811, 1158],
        'comparison': 'gt',
    },
}

# Axis labels for plots
VARIABLE_LABELS = {
    'Ancestry': 'Ancestry',
    'Sex': 'Sex',
    'Education': 'Education',
    'Employment': 'Employment status',
    'Assets': 'Assets',
    'Anxiety': 'Anxiety',
    'Depression': 'Depression',
    'PCS': 'Pain catastrophizing (PCS)',
    'PPT': 'Pressure pain tolerance',
    'APBQ_F': 'APBQ female form',
    'APBQ_M': 'APBQ male form',
}

# Outputs
OUTPUT_ROOT = os.environ.get('CFOREST_OUTPUT_ROOT', 'outputs')
FIG_DPI = 300
FIG_FORMATS = ('png', 'pdf')

IMPORTANT_COLOR = '#D9420B'
NOISE_COLOR = '#035AA6'
