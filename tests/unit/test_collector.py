"""Unit tests for collector.py module."""

import hashlib
import logging
from types import MappingProxyType

import pytest

from sigsecret.collector import (
    BundleNotFoundError,
    SignatureRecord,
    SignatureSet,
    catalog_key,
    collect_signatures,
    content_digest,
)


class TestCatalogKey:
    """Tests for catalog_key()."""

    def test_strips_suffix(self):
        """Test the .sig suffix is removed from the basename."""
        assert catalog_key("msi", "App_x64.msi.sig") == "msi-App_x64.msi"

    def test_sanitizes_unsafe_characters(self):
        """Test characters outside [A-Za-z0-9._-] become underscores."""
        assert catalog_key("dmg", "My App (beta).dmg.sig") == "dmg-My_App__beta_.dmg"

    def test_empty_basename(self):
        """Test a bare .sig file yields no key."""
        assert catalog_key("msi", ".sig") is None


class TestCollectSignatures:
    """Tests for collect_signatures()."""

    def test_missing_bundle_root(self, tmp_path):
        """Test a missing bundle directory raises BundleNotFoundError."""
        with pytest.raises(BundleNotFoundError, match="Bundle directory not found"):
            collect_signatures(tmp_path / "nope", ["windows"])

    def test_bundle_root_is_file(self, tmp_path):
        """Test a file in place of the bundle directory is rejected."""
        path = tmp_path / "bundle"
        path.write_text("not a directory")

        with pytest.raises(BundleNotFoundError):
            collect_signatures(path, ["windows"])

    def test_single_msi_signature(self, bundle_root, write_sig):
        """Test one MSI sidecar becomes one windows record."""
        sig_path = write_sig("msi", "App_x64.msi.sig", "abc123")

        result = collect_signatures(bundle_root, ["windows"])

        assert result.total_count == 1
        assert result.platform_names == ["windows"]
        record = result.platforms["windows"]["msi-App_x64.msi"]
        assert record.content == "abc123"
        assert record.content_hash == hashlib.sha256(b"abc123").hexdigest()
        assert record.source_file == "App_x64.msi.sig"
        assert record.bundle_category == "msi"
        assert record.path == str(sig_path.resolve())

    def test_content_is_trimmed(self, bundle_root, write_sig):
        """Test surrounding whitespace is removed before hashing."""
        write_sig("deb", "app.deb.sig", "\n  sig-data \n\n")

        result = collect_signatures(bundle_root, ["linux"])

        record = result.platforms["linux"]["deb-app.deb"]
        assert record.content == "sig-data"
        assert record.content_hash == content_digest("sig-data")

    def test_empty_signature_skipped(self, bundle_root, write_sig, caplog):
        """Test whitespace-only files never become records."""
        write_sig("msi", "empty.msi.sig", "   \n")
        write_sig("msi", "good.msi.sig", "sig")

        with caplog.at_level(logging.WARNING, logger="sigsecret"):
            result = collect_signatures(bundle_root, ["windows"])

        assert result.total_count == 1
        assert list(result.platforms["windows"]) == ["msi-good.msi"]
        assert "Empty signature file" in caplog.text

    def test_non_signature_files_ignored(self, bundle_root, write_sig):
        """Test artifacts without the .sig suffix are ignored."""
        write_sig("msi", "App.msi", "binary")
        write_sig("msi", "App.msi.sig.bak", "old")

        result = collect_signatures(bundle_root, ["windows"])

        assert result.is_empty
        assert result.total_count == 0

    def test_invalid_utf8_skipped(self, bundle_root, caplog):
        """Test unreadable files are skipped with a warning."""
        (bundle_root / "msi").mkdir()
        (bundle_root / "msi" / "bad.msi.sig").write_bytes(b"\xff\xfe\xfa")

        with caplog.at_level(logging.WARNING, logger="sigsecret"):
            result = collect_signatures(bundle_root, ["windows"])

        assert result.is_empty
        assert "Error reading" in caplog.text

    def test_unknown_platform_skipped(self, bundle_root, write_sig, caplog):
        """Test unknown platforms warn and do not affect others."""
        write_sig("deb", "app.deb.sig", "deb-sig")

        with caplog.at_level(logging.WARNING, logger="sigsecret"):
            result = collect_signatures(bundle_root, "freebsd, linux")

        assert "Unknown platform: freebsd" in caplog.text
        assert result.platform_names == ["linux"]
        assert result.total_count == 1

    def test_no_category_directories(self, bundle_root):
        """Test a bundle without any category directory gives an empty set."""
        result = collect_signatures(bundle_root, ["windows", "macos", "linux"])

        assert result.is_empty
        assert result.total_count == 0
        assert result.to_dict() == {}

    def test_unlistable_category_skipped(self, bundle_root, write_sig, mocker, caplog):
        """Test a category that can't be listed is skipped, not fatal."""
        write_sig("msi", "App.msi.sig", "msi")
        write_sig("nsis", "App-setup.exe.sig", "nsis")

        original_iterdir = type(bundle_root).iterdir

        def iterdir(self):
            if self.name == "msi":
                raise PermissionError("permission denied")
            return original_iterdir(self)

        mocker.patch.object(type(bundle_root), "iterdir", iterdir)

        with caplog.at_level(logging.WARNING, logger="sigsecret"):
            result = collect_signatures(bundle_root, ["windows"])

        assert list(result.platforms["windows"]) == ["nsis-App-setup.exe"]
        assert "Error processing windows/msi" in caplog.text

    def test_categories_in_map_order(self, bundle_root, write_sig):
        """Test categories are scanned in the platform's configured order."""
        write_sig("rpm", "app.rpm.sig", "rpm")
        write_sig("deb", "app.deb.sig", "deb")
        write_sig("appimage", "app.AppImage.sig", "appimage")

        result = collect_signatures(bundle_root, ["linux"])

        assert list(result.platforms["linux"]) == [
            "deb-app.deb",
            "rpm-app.rpm",
            "appimage-app.AppImage",
        ]

    def test_platform_order_follows_request(self, full_bundle):
        """Test platforms appear in requested order, without duplicates."""
        result = collect_signatures(full_bundle, "linux,windows,linux,macos")

        assert result.platform_names == ["linux", "windows", "macos"]

    def test_custom_category_map(self, bundle_root, write_sig):
        """Test a custom map adds categories."""
        write_sig("updater", "App.msi.sig", "sig")

        result = collect_signatures(
            bundle_root, ["windows"], category_map={"windows": ["updater"]}
        )

        assert list(result.platforms["windows"]) == ["updater-App.msi"]

    def test_key_collision_last_wins(self, bundle_root, write_sig):
        """Test colliding keys keep the later file but count both."""
        write_sig("msi", "App v1.msi.sig", "first")
        write_sig("msi", "App_v1.msi.sig", "second")

        result = collect_signatures(bundle_root, ["windows"])

        catalog = result.platforms["windows"]
        assert list(catalog) == ["msi-App_v1.msi"]
        assert catalog["msi-App_v1.msi"].content == "second"
        assert catalog["msi-App_v1.msi"].source_file == "App_v1.msi.sig"
        assert result.total_count == 2

    def test_idempotent(self, full_bundle):
        """Test two runs over the same tree differ only in timestamps."""

        def without_timestamps(signature_set):
            data = signature_set.to_dict()
            for catalog in data.values():
                for record in catalog.values():
                    record.pop("timestamp")
            return data

        first = collect_signatures(full_bundle, ["windows", "macos", "linux"])
        second = collect_signatures(full_bundle, ["windows", "macos", "linux"])

        assert without_timestamps(first) == without_timestamps(second)
        assert first.total_count == second.total_count == 6

    def test_fixed_timestamp(self, bundle_root, write_sig, fixed_now):
        """Test all records carry the supplied extraction time."""
        write_sig("dmg", "App.dmg.sig", "sig")

        result = collect_signatures(bundle_root, ["macos"], now=fixed_now)

        record = result.platforms["macos"]["dmg-App.dmg"]
        assert record.discovered_at == "2025-11-13T12:00:00+00:00"

    def test_result_is_read_only(self, signature_set):
        """Test the returned catalogs can't be modified."""
        with pytest.raises(TypeError):
            signature_set.platforms["windows"] = {}

        with pytest.raises(TypeError):
            signature_set.platforms["windows"]["extra"] = None


class TestSignatureSet:
    """Tests for SignatureSet and SignatureRecord."""

    def test_default_is_empty(self):
        """Test a default set is empty."""
        empty = SignatureSet()

        assert empty.is_empty
        assert empty.platform_names == []
        assert list(empty.records()) == []

    def test_records_iteration_order(self, signature_set):
        """Test records() yields platform then catalog insertion order."""
        keys = [(platform, key) for platform, key, _ in signature_set.records()]

        assert keys == [
            ("windows", "msi-App_1.0.0_x64_en-US.msi"),
            ("windows", "msi-App_1.0.0_x64_en-US.msi.zip"),
            ("windows", "nsis-App_1.0.0_x64-setup.exe"),
            ("macos", "macos-App.app.tar.gz"),
            ("linux", "deb-app_1.0.0_amd64.deb"),
            ("linux", "appimage-app_1.0.0_amd64.AppImage.tar.gz"),
        ]

    def test_record_dict_round_trip(self, signature_set):
        """Test a record survives to_dict()/from_dict()."""
        record = signature_set.platforms["linux"]["deb-app_1.0.0_amd64.deb"]

        assert SignatureRecord.from_dict(record.to_dict()) == record

    def test_record_dict_fields(self):
        """Test the JSON field names."""
        record = SignatureRecord(
            content="c",
            content_hash="h",
            source_file="f.sig",
            bundle_category="msi",
            discovered_at="t",
            path="/b/msi/f.sig",
        )

        assert record.to_dict() == {
            "content": "c",
            "hash": "h",
            "file": "f.sig",
            "category": "msi",
            "timestamp": "t",
            "path": "/b/msi/f.sig",
        }

    def test_to_dict_is_plain_data(self):
        """Test to_dict() returns plain dicts."""
        record = SignatureRecord("c", "h", "f.sig", "msi", "t")
        signature_set = SignatureSet(
            platforms=MappingProxyType({"windows": MappingProxyType({"msi-f": record})}),
            total_count=1,
        )

        data = signature_set.to_dict()

        assert type(data) is dict
        assert type(data["windows"]) is dict
        assert data["windows"]["msi-f"]["content"] == "c"
