"""
Tests for snapshot loading, configuration and the command line entry point.

Validates:
- Addresses are checksummed and role keys normalized on load
- Default interfaces for the ACL and for other apps
- Malformed documents are rejected
- Settings read the ACL_COMPOSER_ environment prefix
- The compile command end to end, without network access
- Malformed input files are reported as errors, not tracebacks
"""

from __future__ import annotations

import json
import sys

import pytest
from pydantic import ValidationError

from acl_composer.cli import main, print_result, run_compile
from acl_composer.config import ComposerSettings
from acl_composer.errors import ErrorKind, InvalidArgumentError
from acl_composer.organization.loader import load_organization, organization_from_dict
from acl_composer.organization.roles import normalize_role
from fixtures import ACL, ALICE, BOB, MANAGER, VOTING, organization_document


class TestLoader:
    def test_addresses_checksummed(self, organization):
        assert organization.apps[1].address == VOTING
        voting = organization.apps_named("voting")[0]
        assert voting.permissions[normalize_role("CREATE_VOTES_ROLE")].grantees == {ALICE}

    def test_role_ids_accepted_as_keys(self):
        document = organization_document()
        role_id = normalize_role("CREATE_VOTES_ROLE")
        document["apps"][1]["permissions"] = {role_id: {"manager": MANAGER}}
        organization = organization_from_dict(document)
        assert role_id in organization.apps_named("voting")[0].permissions

    def test_default_interfaces(self, organization):
        acl = organization.apps_named("acl")[0]
        assert "createPermission" in acl.abi
        assert "forward" in organization.apps_named("finance")[0].abi

    def test_missing_address(self):
        with pytest.raises(ValidationError):
            organization_from_dict({"apps": []})

    def test_bad_role_key(self):
        document = organization_document()
        document["apps"][1]["permissions"] = {"0x1234": {}}
        with pytest.raises(InvalidArgumentError):
            organization_from_dict(document)

    def test_load_from_file(self, tmp_path):
        path = tmp_path / "org.json"
        path.write_text(json.dumps(organization_document()))
        assert load_organization(path).apps_named("acl")[0].address == ACL


class TestSettings:
    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("ACL_COMPOSER_ACL_APP_IDENTIFIER", "acl:1")
        monkeypatch.setenv("ACL_COMPOSER_RPC_URL", "https://rpc.example.org")
        config = ComposerSettings()
        assert config.acl_app_identifier == "acl:1"
        assert config.rpc_url == "https://rpc.example.org"


@pytest.mark.asyncio
class TestCompileCommand:
    async def _write(self, tmp_path, commands):
        org_path = tmp_path / "org.json"
        org_path.write_text(json.dumps(organization_document()))
        commands_path = tmp_path / "commands.json"
        commands_path.write_text(json.dumps(commands))
        return str(org_path), str(commands_path)

    async def test_compile_success(self, tmp_path):
        org_path, commands_path = await self._write(
            tmp_path,
            [
                {"command": "grant", "grantee": BOB, "app": "voting",
                 "role": "CREATE_VOTES_ROLE", "manager": MANAGER},
            ],
        )
        result = await run_compile(org_path, commands_path, "http://localhost:8545")
        assert result.is_success
        assert len(result.actions) == 1
        print_result(result)
        print_result(result, as_json=True)

    async def test_compile_failure(self, tmp_path):
        org_path, commands_path = await self._write(
            tmp_path,
            [{"command": "grant", "grantee": BOB, "app": "voting", "role": "CREATE_VOTES_ROLE"}],
        )
        result = await run_compile(org_path, commands_path, "http://localhost:8545")
        assert result.error_kind == ErrorKind.INVALID_ARGUMENT
        print_result(result)

    async def test_unknown_command_is_reported(self, tmp_path):
        org_path, commands_path = await self._write(tmp_path, [{"command": "install"}])
        result = await run_compile(org_path, commands_path, "http://localhost:8545")
        assert result.error_kind == ErrorKind.INVALID_ARGUMENT
        assert result.error_name == "ErrorInvalidCommand"
        assert result.actions == []

    async def test_malformed_snapshot_is_reported(self, tmp_path):
        org_path, commands_path = await self._write(tmp_path, [])
        (tmp_path / "org.json").write_text(json.dumps({"apps": []}))
        result = await run_compile(org_path, commands_path, "http://localhost:8545")
        assert result.error_kind == ErrorKind.INVALID_ARGUMENT
        assert result.error_name == "ErrorInvalidInput"

    async def test_command_file_must_be_a_list(self, tmp_path):
        org_path, commands_path = await self._write(tmp_path, {"command": "grant"})
        result = await run_compile(org_path, commands_path, "http://localhost:8545")
        assert result.error_name == "ErrorInvalidCommand"


class TestMain:
    def test_bad_command_exits_with_error(self, tmp_path, monkeypatch, capsys):
        org_path = tmp_path / "org.json"
        org_path.write_text(json.dumps(organization_document()))
        commands_path = tmp_path / "commands.json"
        commands_path.write_text(json.dumps([{"command": "install"}]))
        monkeypatch.setattr(
            sys,
            "argv",
            ["acl-composer", "compile", "--org", str(org_path), "--commands", str(commands_path)],
        )

        with pytest.raises(SystemExit) as exc_info:
            main()
        assert exc_info.value.code == 1
        assert "invalid_argument" in capsys.readouterr().out
