"""
Tests for core.bootstrap — service wiring, data files, numbering policies.
"""

from core.bootstrap import DocFlowServices, build_services
from core.config.settings import DocFlowSettings
from core.numbering.models import COUNTER_ORDER, POLICY_GAP_FILLING
from engines.returns.models import ReturnAuthorization
from engines.sales.models import Order


class TestWiring:
    def test_builds_every_engine(self, tmp_path):
        services = build_services(settings=DocFlowSettings(data_dir=tmp_path / "data"))

        assert isinstance(services, DocFlowServices)
        assert (tmp_path / "data").is_dir()
        assert len(services.engines) == 4

    def test_collection_files_written_on_first_save(self, tmp_path):
        services = build_services(settings=DocFlowSettings(data_dir=tmp_path))
        services.orders.create(Order())
        services.rmas.create(ReturnAuthorization())

        assert (tmp_path / "orders.json").exists()
        assert (tmp_path / "rmas.json").exists()
        assert (tmp_path / "order_counter.txt").read_text().strip() == "100001"

    def test_settings_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DOCFLOW_DATA_DIR", str(tmp_path))
        services = build_services()
        assert services.settings.data_dir == tmp_path


class TestNumberingPolicies:
    def test_gap_filling_reuses_deleted_numbers(self, tmp_path):
        settings = DocFlowSettings(
            data_dir=tmp_path, numbering_policies={COUNTER_ORDER: POLICY_GAP_FILLING}
        )
        services = build_services(settings=settings)

        numbers = [services.orders.create(Order()) for _ in range(3)]
        assert [o.number for o in numbers] == ["100000", "100001", "100002"]

        services.orders.delete(numbers[1].id)
        assert services.orders.create(Order()).number == "100001"
        assert services.orders.create(Order()).number == "100003"
        assert not (tmp_path / "order_counter.txt").exists()

    def test_monotonic_never_reuses(self, tmp_path):
        services = build_services(settings=DocFlowSettings(data_dir=tmp_path))
        first = services.orders.create(Order())
        services.orders.delete(first.id)
        assert services.orders.create(Order()).number == "100002"
