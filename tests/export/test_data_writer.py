#!filepath: tests/export/test_data_writer.py
import pandas as pd
import pyarrow.parquet as pq
import pytest

from trialflow.core.records import DataCollection, TrialRecord
from trialflow.io import DataWriter


@pytest.fixture
def data():
    dc = DataCollection()
    dc.append(TrialRecord(trial_index=0, trial_type="html", response="f", rt=512).freeze())
    dc.append(
        TrialRecord(
            trial_index=1,
            trial_type="html",
            response="j",
            rt=640,
            timeline_variables={"word": "RED"},
        ).freeze()
    )
    return dc


def test_write_parquet(tmp_path, data):
    path = DataWriter().write(data, tmp_path / "run" / "data.parquet")

    table = pq.read_table(path)
    assert table.num_rows == 2
    assert table.column("rt").to_pylist() == [512, 640]
    assert table.column("timeline_variables").to_pylist() == [None, '{"word": "RED"}']
    assert not (tmp_path / "run" / "data.parquet.tmp").exists()


def test_write_csv(tmp_path, data):
    path = DataWriter().write(data, tmp_path / "data.csv")

    df = pd.read_csv(path)
    assert list(df["response"]) == ["f", "j"]
    assert list(df["trial_index"]) == [0, 1]


def test_unsupported_format(tmp_path, data):
    with pytest.raises(ValueError):
        DataWriter().write(data, tmp_path / "data.xlsx")
