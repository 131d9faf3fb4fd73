#!filepath: tests/core/test_records.py
import pandas as pd
import pytest

from trialflow.core.records import DataCollection, TrialRecord
from trialflow.utils.errors import FrozenRecordError


def _record(**fields):
    return TrialRecord(fields).freeze()


@pytest.fixture
def data():
    dc = DataCollection()
    dc.append(_record(trial_index=0, trial_type="fixation", rt=None))
    dc.append(_record(trial_index=1, trial_type="html", rt=500, correct=True))
    dc.append(_record(trial_index=2, trial_type="html", rt=700, correct=False))
    return dc


def test_record_is_mutable_until_frozen():
    r = TrialRecord({"rt": 300})
    r["correct"] = True
    assert r.correct is True

    r.freeze()
    with pytest.raises(FrozenRecordError):
        r["rt"] = 1
    with pytest.raises(FrozenRecordError):
        del r["rt"]
    assert r["rt"] == 300


def test_frozen_record_error_is_type_error():
    r = _record(a=1)
    with pytest.raises(TypeError):
        r.update({"a": 2})


def test_record_attribute_access():
    r = _record(response="f")
    assert r.response == "f"
    with pytest.raises(AttributeError):
        _ = r.missing


def test_append_requires_frozen_record():
    with pytest.raises(ValueError):
        DataCollection().append(TrialRecord({"a": 1}))


def test_queries(data):
    assert data.count() == 3
    assert data.filter(trial_type="html").count() == 2
    assert data.filter(trial_type="html", correct=True).select("rt") == [500]
    assert data.filter_by(lambda r: (r["rt"] or 0) > 600).select("trial_index") == [2]
    assert data.last().select("trial_index") == [2]
    assert data.first(2).select("trial_index") == [0, 1]
    assert data.since(1).select("trial_index") == [1, 2]
    assert data.last(0).count() == 0


def test_queries_do_not_modify_collection(data):
    data.filter(trial_type="html")
    data.last(1)
    assert len(data) == 3


def test_to_dataframe(data):
    df = data.to_dataframe()
    assert isinstance(df, pd.DataFrame)
    assert list(df["trial_index"]) == [0, 1, 2]


def test_to_arrow(data):
    table = data.to_arrow()
    assert table.num_rows == 3
    assert "trial_type" in table.column_names
