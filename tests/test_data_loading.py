import pandas as pd
import pytest

from cforest_reports.config import RAW_COLUMNS
from cforest_reports.data_loading import load_survey_data, validate_columns
from cforest_reports.errors import SchemaError


def test_load_survey_data_reads_full_table(survey_csv):
    df = load_survey_data(survey_csv)

    assert len(df) == 212
    assert list(df.columns) == RAW_COLUMNS


def test_load_survey_data_treats_blank_and_na_as_missing(tmp_path, survey_df):
    path = tmp_path / "with_na.csv"
    text = survey_df.head(3).to_csv(index=False, na_rep='')
    lines = text.splitlines()
    header, first = lines[0], lines[1].split(',')
    first[RAW_COLUMNS.index('Anxiety')] = 'NA'
    path.write_text("\n".join([header, ",".join(first)] + lines[2:]) + "\n")

    df = load_survey_data(str(path))

    assert pd.isna(df.loc[0, 'Anxiety'])


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError, match="not found"):
        load_survey_data(str(tmp_path / "nope.csv"))


def test_empty_file_raises(tmp_path):
    path = tmp_path / "empty.csv"
    path.write_text("")

    with pytest.raises(ValueError, match="empty"):
        load_survey_data(str(path))


def test_header_only_file_raises(tmp_path):
    path = tmp_path / "header.csv"
    path.write_text(",".join(RAW_COLUMNS) + "\n")

    with pytest.raises(ValueError, match="no rows"):
        load_survey_data(str(path))


def test_missing_column_is_named(tmp_path, survey_df):
    path = tmp_path / "no_pcs.csv"
    survey_df.drop(columns=['PCS']).to_csv(path, index=False)

    with pytest.raises(SchemaError, match="PCS"):
        load_survey_data(str(path))


def test_validate_columns_lists_every_missing_column():
    df = pd.DataFrame({'a': [1]})

    with pytest.raises(SchemaError) as excinfo:
        validate_columns(df, ['a', 'b', 'c'])

    assert "'b'" in str(excinfo.value)
    assert "'c'" in str(excinfo.value)


def test_schema_error_is_value_error():
    assert issubclass(SchemaError, ValueError)
