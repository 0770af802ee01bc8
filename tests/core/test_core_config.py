"""
Tests for core.config — DocFlowSettings defaults, validation, environment.
"""

from pathlib import Path

import pytest

from core.config.settings import DocFlowSettings
from core.numbering.models import (
    COUNTER_CORRECTION_TICKET,
    COUNTER_ORDER,
    COUNTER_PURCHASE_ORDER,
    DEFAULT_FLOORS,
    POLICY_GAP_FILLING,
    POLICY_MONOTONIC,
)


class TestDefaults:
    def test_every_counter_defaults_to_monotonic(self, tmp_path):
        settings = DocFlowSettings(data_dir=tmp_path)
        specs = {spec.name: spec for spec in settings.counter_specs()}

        assert set(specs) == set(DEFAULT_FLOORS)
        assert all(spec.policy == POLICY_MONOTONIC for spec in specs.values())
        assert specs[COUNTER_ORDER].floor == 100000
        assert specs[COUNTER_CORRECTION_TICKET].floor == 600000

    def test_path_for(self, tmp_path):
        settings = DocFlowSettings(data_dir=str(tmp_path))
        assert settings.data_dir == tmp_path
        assert settings.path_for("orders.json") == tmp_path / "orders.json"


class TestValidation:
    def test_unknown_policy_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="not valid"):
            DocFlowSettings(data_dir=tmp_path, numbering_policies={COUNTER_ORDER: "RANDOM"})

    def test_policy_for_unknown_counter_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown counter"):
            DocFlowSettings(data_dir=tmp_path, numbering_policies={"widgets": POLICY_MONOTONIC})

    def test_negative_floor_rejected(self, tmp_path):
        with pytest.raises(ValueError, match="Floor"):
            DocFlowSettings(data_dir=tmp_path, counter_floors={COUNTER_ORDER: -5})


class TestFromEnv:
    def test_reads_data_dir_and_policies(self, tmp_path):
        settings = DocFlowSettings.from_env(
            {
                "DOCFLOW_DATA_DIR": str(tmp_path),
                "DOCFLOW_NUMBERING_ORDER": "gap_filling",
                "DOCFLOW_NUMBERING_PURCHASE_ORDER": "MONOTONIC",
            }
        )
        assert settings.data_dir == tmp_path
        assert settings.policy_for(COUNTER_ORDER) == POLICY_GAP_FILLING
        assert settings.policy_for(COUNTER_PURCHASE_ORDER) == POLICY_MONOTONIC
        assert settings.quarantine_corrupt_files is True

    def test_defaults_when_unset(self):
        settings = DocFlowSettings.from_env({})
        assert settings.data_dir == Path.cwd() / "data"
        assert settings.numbering_policies == {}

    def test_quarantine_switch(self):
        settings = DocFlowSettings.from_env({"DOCFLOW_QUARANTINE_CORRUPT": "0"})
        assert settings.quarantine_corrupt_files is False

    def test_invalid_policy_in_env_rejected(self):
        with pytest.raises(ValueError, match="not valid"):
            DocFlowSettings.from_env({"DOCFLOW_NUMBERING_RMA": "sometimes"})
