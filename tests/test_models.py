"""Tests for the AssetTree / Commit data model and license settings."""

import json
import logging

import pytest

from nit.crypto.digest import canonical_bytes
from nit.models.asset_tree import (
    AssetTree,
    AssetTreeUpdates,
    create_initial_asset_tree,
    update_asset_tree,
)
from nit.models.commit import (
    INITIAL_REGISTRATION,
    Action,
    ActionKind,
    Commit,
    CommitOverlay,
    apply_overlay,
    create_commit_draft,
    finalize_commit,
)
from nit.models.license import PRESET_LICENSES, LicenseKind, LicenseSetting


AUTHOR = {"type": "person", "name": "Alice", "wallet": "0xabc"}


def _tree(**overrides) -> AssetTree:
    base = create_initial_asset_tree(
        asset_cid="bafkreiasset",
        mimetype="image/jpeg",
        birthtime=1_600_000_000,
        author=AUTHOR,
        license=PRESET_LICENSES["cc-by"],
    )
    return update_asset_tree(base, AssetTreeUpdates(**overrides))


class TestAssetTree:
    def test_initial_tree_defaults(self) -> None:
        tree = _tree()
        assert tree.abstract == ""
        assert tree.nft_record is None
        assert tree.integrity_cid is None
        assert tree.license == PRESET_LICENSES["cc-by"]

    def test_wire_keys_are_camel_case(self) -> None:
        data = _tree(nft_record="bafynft").to_dict()
        assert data["assetCid"] == "bafkreiasset"
        assert data["nftRecord"] == "bafynft"
        assert "integrityCid" in data

    def test_from_dict_round_trip(self) -> None:
        tree = _tree(abstract="hello", integrity_cid="bafyint")
        assert AssetTree.from_dict(json.loads(tree.to_bytes())) == tree

    def test_from_dict_requires_asset_cid(self) -> None:
        with pytest.raises(ValueError, match="assetCid"):
            AssetTree.from_dict({"mimetype": "image/png"})

    def test_to_bytes_is_canonical(self) -> None:
        tree = _tree()
        assert tree.to_bytes() == canonical_bytes(tree.to_dict())

    def test_from_dict_warns_on_dropped_fields(self, caplog: pytest.LogCaptureFixture) -> None:
        data = _tree().to_dict()
        data["creatorNote"] = "kept by another tool"
        with caplog.at_level(logging.WARNING, logger="nit.models.asset_tree"):
            tree = AssetTree.from_dict(data)
        assert tree == _tree()
        assert "creatorNote" in caplog.text


class TestUpdateMerge:
    def test_only_supplied_fields_change(self) -> None:
        base = _tree(abstract="old", nft_record="bafynft")
        updated = update_asset_tree(base, AssetTreeUpdates(abstract="new"))
        assert updated.abstract == "new"
        assert updated.nft_record == "bafynft"

    def test_identity_fields_fixed(self) -> None:
        base = _tree()
        updated = update_asset_tree(
            base, AssetTreeUpdates(abstract="x", license={"name": "MIT"}),
        )
        assert updated.asset_cid == base.asset_cid
        assert updated.mimetype == base.mimetype
        assert updated.birthtime == base.birthtime

    def test_base_not_mutated(self) -> None:
        base = _tree(abstract="old")
        update_asset_tree(base, AssetTreeUpdates(abstract="new"))
        assert base.abstract == "old"

    def test_empty_string_is_a_supplied_value(self) -> None:
        base = _tree(abstract="old")
        assert update_asset_tree(base, AssetTreeUpdates(abstract="")).abstract == ""

    def test_no_updates_is_identity(self) -> None:
        base = _tree(abstract="same")
        assert update_asset_tree(base, AssetTreeUpdates()) == base


class TestLicenseSetting:
    def test_preset_resolves_to_structure(self) -> None:
        setting = LicenseSetting.from_config("cc-by-nc")
        assert setting.kind == LicenseKind.PRESET
        assert setting.resolve() == PRESET_LICENSES["cc-by-nc"]

    def test_unknown_preset_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown license preset"):
            LicenseSetting.from_config("all-rights-maybe")

    def test_custom_body_verbatim(self) -> None:
        body = {"name": "House license", "terms": ["no resale"]}
        setting = LicenseSetting.from_config("custom", body)
        assert setting.kind == LicenseKind.CUSTOM
        assert setting.resolve() == body

    def test_custom_body_from_json_string(self) -> None:
        setting = LicenseSetting.from_config("custom", '{"name": "Inline"}')
        assert setting.resolve() == {"name": "Inline"}

    def test_custom_requires_object(self) -> None:
        with pytest.raises(ValueError, match="licenseContent"):
            LicenseSetting.from_config("custom", "")

    def test_resolve_returns_copy(self) -> None:
        setting = LicenseSetting.preset("mit")
        setting.resolve()["name"] = "tampered"
        assert PRESET_LICENSES["mit"]["name"] == "MIT"


class TestAction:
    def test_known_value(self) -> None:
        assert Action.parse("mint-nft") == Action(ActionKind.MINT_NFT)

    def test_legacy_prefix(self) -> None:
        assert Action.parse("action-initial-registration") == INITIAL_REGISTRATION

    def test_unknown_becomes_custom(self) -> None:
        action = Action.parse("colour-graded")
        assert action.kind == ActionKind.CUSTOM
        assert action.value == "colour-graded"

    def test_known_value_round_trip(self) -> None:
        assert Action.parse(Action(ActionKind.TRANSFER).value).kind == ActionKind.TRANSFER


class TestCommit:
    def test_draft_defaults(self) -> None:
        draft = create_commit_draft(AUTHOR, {"name": "Bob"}, {"name": "Studio"})
        assert draft.is_draft
        assert draft.action == INITIAL_REGISTRATION
        assert draft.asset_tree_cid is None
        assert draft.asset_tree_signature is None
        assert draft.timestamp_created is None

    def test_overlay_only_supplied_fields(self) -> None:
        draft = create_commit_draft(AUTHOR, AUTHOR, AUTHOR)
        stamped = apply_overlay(draft, CommitOverlay(message="first"), timestamp=42)
        assert stamped.abstract == "first"
        assert stamped.action == draft.action
        assert stamped.timestamp_created == 42

    def test_overlay_action_and_result(self) -> None:
        draft = create_commit_draft(AUTHOR, AUTHOR, AUTHOR)
        stamped = apply_overlay(
            draft,
            CommitOverlay(action=Action.parse("update"), action_result="ok"),
            timestamp=1,
        )
        assert stamped.action.kind == ActionKind.UPDATE
        assert stamped.action_result == "ok"

    def test_finalize(self) -> None:
        draft = create_commit_draft(AUTHOR, AUTHOR, AUTHOR)
        commit = finalize_commit(draft, "bafytree", "ab" * 32, "0xsig")
        assert not commit.is_draft
        assert commit.asset_tree_cid == "bafytree"

    def test_wire_round_trip(self) -> None:
        commit = finalize_commit(
            apply_overlay(
                create_commit_draft(AUTHOR, AUTHOR, AUTHOR),
                CommitOverlay(action=Action.parse("custom-thing")),
                timestamp=7,
            ),
            "bafytree", "cd" * 32, "0xsig",
        )
        data = json.loads(commit.to_bytes())
        assert data["action"] == "custom-thing"
        assert data["timestampCreated"] == 7
        assert Commit.from_dict(data) == commit
