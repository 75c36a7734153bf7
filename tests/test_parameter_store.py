"""
Tests for ParameterStore - typed parameters persisted atomically
"""

import json

import pytest

from elkarbackup.services.parameters.parameter_store import ParameterStore, Parameters


class TestParameters:
    def test_private_key_is_derived_from_public_key(self) -> None:
        parameters = Parameters(public_key="/home/eb/.ssh/id_rsa.pub")
        assert parameters.private_key == "/home/eb/.ssh/id_rsa"

    def test_private_key_without_pub_suffix(self) -> None:
        parameters = Parameters(public_key="/home/eb/key")
        assert parameters.private_key == "/home/eb/key.key"


class TestParameterStore:
    def test_load_defaults_when_missing(self, parameter_store: ParameterStore) -> None:
        parameters = parameter_store.load()

        assert parameters == Parameters()
        assert parameters.disable_background is False

    def test_save_and_load(self, parameter_store: ParameterStore) -> None:
        parameter_store.save(Parameters(url_prefix="/elkarbackup", max_parallel_jobs=3))

        loaded = parameter_store.load()

        assert loaded.url_prefix == "/elkarbackup"
        assert loaded.max_parallel_jobs == 3

    def test_update_merges_changes(self, parameter_store: ParameterStore) -> None:
        parameter_store.save(Parameters(url_prefix="/eb"))

        updated = parameter_store.update({"disable_background": True})

        assert updated.disable_background is True
        assert updated.url_prefix == "/eb"
        with open(parameter_store.path, encoding="utf-8") as f:
            assert json.load(f)["disable_background"] is True

    @pytest.mark.parametrize(
        "changes",
        [
            {"no_such_parameter": 1},
            {"max_parallel_jobs": 0},
            {"warning_load_level": 1.5},
            {"backup_dirs": []},
        ],
    )
    def test_invalid_update_writes_nothing(
        self, parameter_store: ParameterStore, changes
    ) -> None:
        parameter_store.save(Parameters(url_prefix="/eb"))
        with open(parameter_store.path, encoding="utf-8") as f:
            before = f.read()

        with pytest.raises(ValueError):
            parameter_store.update(changes)

        with open(parameter_store.path, encoding="utf-8") as f:
            assert f.read() == before

    def test_corrupt_file_raises(self, parameter_store: ParameterStore) -> None:
        with open(parameter_store.path, "w", encoding="utf-8") as f:
            f.write("{not json")

        with pytest.raises(ValueError):
            parameter_store.load()
