"""Unit tests for the role registry, identity resolution and configuration"""
import pytest

import config
from custody.adapters.identity import MappingIdentityResolver
from custody.domain.exceptions import IdentityUnavailable
from custody.domain.roles import Operation, RolePolicy


class TestRolePolicy:

    def test_register_and_recall_roles(self, policy):
        assert policy.permits("Cipla", Operation.REGISTER)
        assert not policy.permits("CDSCO", Operation.REGISTER)
        assert policy.permits("CDSCO", Operation.RECALL)
        assert not policy.permits("Cipla", Operation.RECALL)

    def test_custodian_gated_operations(self, policy):
        assert policy.permits("Medlife", Operation.TRANSFER, custodian="Medlife")
        assert policy.permits("Medlife", Operation.DELIVER, custodian="Medlife")
        assert not policy.permits("Medlife", Operation.TRANSFER, custodian="Apollo")
        assert not policy.permits("Medlife", Operation.TRANSFER)
        assert not policy.permits("", Operation.TRANSFER, custodian="")

    def test_track_is_open_to_everyone(self, policy):
        assert policy.permits("", Operation.TRACK)
        assert policy.permits("anyone", Operation.TRACK)

    def test_roles_must_be_named(self):
        with pytest.raises(ValueError):
            RolePolicy(manufacturer="", regulator="CDSCO")

    def test_policy_from_environment(self, monkeypatch):
        monkeypatch.setenv("MANUFACTURER_ROLE", "SunPharma")
        monkeypatch.setenv("REGULATOR_ROLE", "FDA")

        policy = RolePolicy.from_config()

        assert policy == RolePolicy(manufacturer="SunPharma", regulator="FDA")

    def test_default_roles(self, monkeypatch):
        monkeypatch.delenv("MANUFACTURER_ROLE", raising=False)
        monkeypatch.delenv("REGULATOR_ROLE", raising=False)

        assert RolePolicy.from_config() == RolePolicy(manufacturer="Cipla", regulator="CDSCO")


class TestMappingIdentityResolver:

    def test_resolves_registered_credential(self):
        resolver = MappingIdentityResolver({"CiplaMSP": "Cipla"})

        assert resolver.resolve("CiplaMSP") == "Cipla"

    @pytest.mark.parametrize("credential", ["", None, "UnknownMSP", "Cipla"])
    def test_unknown_credentials_are_unavailable(self, credential):
        resolver = MappingIdentityResolver({"CiplaMSP": "Cipla"})

        with pytest.raises(IdentityUnavailable):
            resolver.resolve(credential)

    def test_role_names_are_not_derived_from_credentials(self):
        resolver = MappingIdentityResolver({"Org1MSP": "Cipla"})

        assert resolver.resolve("Org1MSP") == "Cipla"

    def test_default_mapping_comes_from_config(self, monkeypatch):
        monkeypatch.setenv("CUSTODY_IDENTITIES", "AMSP=Alpha, BMSP=Beta")

        resolver = MappingIdentityResolver()

        assert resolver.resolve("BMSP") == "Beta"


class TestConfig:

    def test_default_identity_mapping(self, monkeypatch):
        monkeypatch.delenv("CUSTODY_IDENTITIES", raising=False)

        assert config.get_identity_mapping() == {
            "CiplaMSP": "Cipla",
            "MedlifeMSP": "Medlife",
            "ApolloMSP": "Apollo",
            "CDSCOMSP": "CDSCO",
        }

    def test_invalid_identity_mapping(self, monkeypatch):
        monkeypatch.setenv("CUSTODY_IDENTITIES", "CiplaMSP")

        with pytest.raises(ValueError):
            config.get_identity_mapping()

    def test_postgres_uri(self, monkeypatch):
        monkeypatch.setenv("DB_HOST", "db")
        monkeypatch.delenv("DB_PORT", raising=False)
        monkeypatch.setenv("DB_USER", "u")
        monkeypatch.setenv("DB_PASSWORD", "p")
        monkeypatch.setenv("DB_NAME", "ledger")

        assert config.get_postgres_uri() == "postgresql://u:p@db:5432/ledger"
