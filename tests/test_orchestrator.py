"""End-to-end tests for MigrationOrchestrator over on-disk corpora."""

import hashlib
from unittest.mock import patch

import pytest

from notelift.config.models import NoteliftConfig, ScanConfig, StoreConfig, UploadConfig
from notelift.errors import CorpusNotFoundError, FileWriteError
from notelift.migration import MigrationOrchestrator, discover_documents, run_migration
from notelift.store.memory import InMemoryImageStore
from notelift.uploader import compute_fingerprint

from conftest import PNG_A, PNG_B, make_vault

PLACEHOLDER = "![](https://imagedelivery.net/placeholder/obsidian-shot.png)"


def _url_for(store, data):
    """Delivery URL the memory store assigned to *data*."""
    for n, (_, uploaded) in enumerate(store.uploads, start=1):
        if uploaded == data:
            return f"{store.base_url}/{n:04d}-{hashlib.sha256(data).hexdigest()[:8]}/public"
    raise AssertionError("content was never uploaded")


def _file(report, name):
    return next(f for f in report.files if f.file_path.endswith(name))


# ── Discovery ───────────────────────────────────────────────────────


class TestDiscovery:
    def test_skips_hidden_and_ignored(self, vault):
        (vault / "node_modules").mkdir()
        (vault / "node_modules" / "pkg.md").write_text("x")
        (vault / ".hidden.md").write_text("x")
        docs = discover_documents(vault.resolve())
        names = [d.relative_to(vault.resolve()).as_posix() for d in docs]
        assert names == ["notes/a.md", "notes/b.md", "notes/plain.md"]

    def test_extensions_configurable(self, tmp_path):
        root = make_vault(tmp_path / "c", {"a.md": "", "b.txt": "", "c.MARKDOWN": ""})
        assert [d.name for d in discover_documents(root, [".txt"])] == ["b.txt"]
        assert [d.name for d in discover_documents(root)] == ["a.md", "c.MARKDOWN"]


# ── Apply mode ──────────────────────────────────────────────────────


class TestApplyRun:
    @pytest.mark.asyncio
    async def test_migrates_every_syntax(self, vault, sample_config, memory_store):
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)

        url_a = _url_for(memory_store, PNG_A)
        url_b = _url_for(memory_store, PNG_B)
        assert (vault / "notes" / "a.md").read_text() == (
            "# A\n\n"
            f"![diagram]({url_a})\n"
            f"Again: ![diagram]({url_a})\n"
            f"![]({url_b})\n"
            "Remote: ![x](https://imagedelivery.net/abc/public)\n"
        )
        assert (vault / "notes" / "b.md").read_text() == (
            f'<p><img src="{url_a}" alt="copy" width="200"></p>\n'
        )
        assert report.files_scanned == 3
        assert report.files_modified == 2
        assert report.references_found == 4
        assert report.references_replaced == 4
        assert report.references_failed == 0
        assert not report.failed

    @pytest.mark.asyncio
    async def test_identical_bytes_uploaded_once(self, vault, sample_config, memory_store):
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)

        # img.png and shared/copy.png carry the same bytes
        assert memory_store.calls == 2
        assert report.uploads_performed == 2
        assert report.cache_hits == 1
        assert len(report.uploads) == 2

    @pytest.mark.asyncio
    async def test_document_without_references_untouched(self, vault, sample_config, memory_store):
        plain = vault / "notes" / "plain.md"
        before = plain.stat().st_mtime_ns
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)

        assert plain.read_bytes() == b"No images here.\n"
        assert plain.stat().st_mtime_ns == before
        assert not _file(report, "plain.md").written

    @pytest.mark.asyncio
    async def test_second_run_is_noop(self, vault, sample_config, memory_store):
        orchestrator = MigrationOrchestrator(sample_config, memory_store)
        await orchestrator.run(vault)
        snapshot = {p: p.read_bytes() for p in vault.rglob("*.md")}

        again = await orchestrator.run(vault)

        assert again.references_replaced == 0
        assert again.files_modified == 0
        assert again.uploads_performed == 0
        assert memory_store.calls == 2
        assert {p: p.read_bytes() for p in vault.rglob("*.md")} == snapshot

    @pytest.mark.asyncio
    async def test_attachments_fallback_replaces_every_occurrence(self, tmp_path, sample_config, memory_store):
        root = make_vault(tmp_path / "v", {
            "journal/day.md": "![[shot.png]]\ntext\n![[shot.png]]\n",
            "attachments/shot.png": PNG_B,
        })
        await MigrationOrchestrator(sample_config, memory_store).run(root)

        url = _url_for(memory_store, PNG_B)
        assert (root / "journal" / "day.md").read_text() == f"![]({url})\ntext\n![]({url})\n"
        assert memory_store.calls == 1

    @pytest.mark.asyncio
    async def test_line_endings_and_bom_preserved(self, tmp_path, sample_config, memory_store):
        raw = b"\xef\xbb\xbf# T\r\n\r\n![a](a.png)\r\nend\r\n"
        root = make_vault(tmp_path / "v", {"doc.md": raw, "a.png": PNG_A})
        await MigrationOrchestrator(sample_config, memory_store).run(root)

        url = _url_for(memory_store, PNG_A)
        assert (root / "doc.md").read_bytes() == (
            b"\xef\xbb\xbf# T\r\n\r\n![a](" + url.encode() + b")\r\nend\r\n"
        )

    @pytest.mark.asyncio
    async def test_progress_called_per_document(self, vault, sample_config, memory_store):
        seen = []
        await MigrationOrchestrator(sample_config, memory_store, progress=seen.append).run(vault)
        assert sorted(r.file_path.rsplit("/", 1)[-1] for r in seen) == ["a.md", "b.md", "plain.md"]

    @pytest.mark.asyncio
    async def test_changes_lists_rewritten_documents(self, vault, sample_config, memory_store):
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)
        changes = report.changes()
        assert sorted(c.path.rsplit("/", 1)[-1] for c in changes) == ["a.md", "b.md"]
        for change in changes:
            assert change.content == open(change.path, encoding="utf-8").read()

    @pytest.mark.asyncio
    async def test_lazy_load_img_migrates_real_src(self, tmp_path, sample_config, memory_store):
        root = make_vault(tmp_path / "v", {
            "doc.md": '<img data-src="lazy.png" src="real.png">\n',
            "lazy.png": PNG_B,
            "real.png": PNG_A,
        })
        orchestrator = MigrationOrchestrator(sample_config, memory_store)
        report = await orchestrator.run(root)

        url = _url_for(memory_store, PNG_A)
        assert (root / "doc.md").read_text() == f'<img data-src="lazy.png" src="{url}">\n'
        assert memory_store.uploads == [("real.png", PNG_A)]
        assert report.references_replaced == 1

        again = await orchestrator.run(root)
        assert again.references_found == 0

    @pytest.mark.asyncio
    async def test_single_worker(self, vault, memory_store):
        config = NoteliftConfig(max_workers=1, upload=UploadConfig(max_concurrency=1))
        report = await MigrationOrchestrator(config, memory_store).run(vault)
        assert report.references_replaced == 4


# ── Partial failure ─────────────────────────────────────────────────


class TestPartialFailure:
    @pytest.mark.asyncio
    async def test_unreadable_document_is_isolated(self, vault, sample_config, memory_store):
        (vault / "notes" / "broken.md").write_bytes(b"\xff\xfe\xfa ![x](img.png)")
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)

        broken = _file(report, "broken.md")
        assert broken.error
        assert report.file_errors == 1
        assert report.files_modified == 2
        assert not report.failed

    @pytest.mark.asyncio
    async def test_unresolved_reference_left_in_place(self, tmp_path, sample_config, memory_store):
        root = make_vault(tmp_path / "v", {
            "doc.md": "![[ghost.png]] ![ok](ok.png)\n",
            "ok.png": PNG_A,
        })
        report = await MigrationOrchestrator(sample_config, memory_store).run(root)

        url = _url_for(memory_store, PNG_A)
        assert (root / "doc.md").read_text() == f"![[ghost.png]] ![ok]({url})\n"
        doc = _file(report, "doc.md")
        assert [r.path_token for r in doc.unresolved] == ["ghost.png"]
        assert report.references_failed == 1
        assert report.references_replaced == 1

    @pytest.mark.asyncio
    async def test_failed_upload_left_in_place(self, vault, sample_config):
        store = InMemoryImageStore(fail_filenames={"shot.png"})
        report = await MigrationOrchestrator(sample_config, store).run(vault)

        text = (vault / "notes" / "a.md").read_text()
        assert "![[shot.png]]" in text
        assert "./img.png" not in text
        doc = _file(report, "a.md")
        assert len(doc.failed_uploads) == 1
        assert "simulated rejection" in doc.failed_uploads[0].reason
        assert report.references_failed == 1

    @pytest.mark.asyncio
    async def test_write_failure_recorded(self, tmp_path, sample_config, memory_store):
        root = make_vault(tmp_path / "v", {"doc.md": "![a](a.png)\n", "a.png": PNG_A})
        with patch.object(
            MigrationOrchestrator, "_write", side_effect=FileWriteError(root / "doc.md", OSError("disk full"))
        ):
            report = await MigrationOrchestrator(sample_config, memory_store).run(root)

        doc = _file(report, "doc.md")
        assert "disk full" in doc.error
        assert not doc.written
        assert report.references_failed == 1
        assert report.references_replaced == 0
        assert (root / "doc.md").read_text() == "![a](a.png)\n"

    @pytest.mark.asyncio
    async def test_failure_threshold_marks_run_failed(self, tmp_path):
        files = {f"doc{i}.md": f"![i](img{i}.png)\n" for i in range(4)}
        files.update({f"img{i}.png": bytes([i]) * 32 for i in range(4)})
        root = make_vault(tmp_path / "v", files)
        store = InMemoryImageStore(fail_filenames={f"img{i}.png" for i in range(4)})
        config = NoteliftConfig(upload=UploadConfig(failure_threshold=0.5, abort_min_attempts=2))

        report = await MigrationOrchestrator(config, store).run(root)

        assert report.aborted
        assert report.failed
        assert report.references_failed == 4
        assert store.calls >= 2

    @pytest.mark.asyncio
    async def test_missing_corpus_raises(self, tmp_path, sample_config, memory_store):
        with pytest.raises(CorpusNotFoundError):
            await MigrationOrchestrator(sample_config, memory_store).run(tmp_path / "nope")

    @pytest.mark.asyncio
    async def test_apply_requires_store(self, vault, sample_config):
        with pytest.raises(ValueError, match="image store"):
            await MigrationOrchestrator(sample_config).run(vault)


# ── Dry run ─────────────────────────────────────────────────────────


class TestDryRun:
    @pytest.mark.asyncio
    async def test_no_uploads_and_no_writes(self, vault, sample_config, memory_store):
        snapshot = {p: p.read_bytes() for p in vault.rglob("*.md")}
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault, dry_run=True)

        assert memory_store.calls == 0
        assert {p: p.read_bytes() for p in vault.rglob("*.md")} == snapshot
        assert report.dry_run
        assert report.references_resolvable == 4
        assert report.references_replaced == 0
        assert report.files_modified == 2
        assert report.uploads_performed == 0

    @pytest.mark.asyncio
    async def test_works_without_store(self, vault, sample_config):
        report = await MigrationOrchestrator(sample_config).run(vault, dry_run=True)
        resolved = {str(r.resolved_path) for r in _file(report, "a.md").resolvable}
        assert str((vault / "attachments" / "shot.png").resolve()) in resolved

    @pytest.mark.asyncio
    async def test_fingerprints_computed(self, vault, sample_config):
        report = await MigrationOrchestrator(sample_config).run(vault, dry_run=True)

        planned = [item for f in report.files for item in f.resolvable]
        assert len(planned) == 4
        for item in planned:
            assert item.fingerprint == compute_fingerprint(item.resolved_path)

        by_name = {item.resolved_path.name: item.fingerprint for item in planned}
        # img.png and shared/copy.png carry the same bytes
        assert by_name["img.png"] == by_name["copy.png"] == hashlib.sha256(PNG_A).hexdigest()
        assert by_name["shot.png"] == hashlib.sha256(PNG_B).hexdigest()

    @pytest.mark.asyncio
    async def test_unreadable_image_reported_failed(self, tmp_path, sample_config):
        root = make_vault(tmp_path / "v", {"doc.md": "![a](a.png) ![a](a.png)\n", "a.png": PNG_A})
        with patch(
            "notelift.migration.orchestrator.compute_fingerprint",
            side_effect=PermissionError("denied"),
        ) as mock_fp:
            report = await MigrationOrchestrator(sample_config).run(root, dry_run=True)

        doc = _file(report, "doc.md")
        assert mock_fp.call_count == 1
        assert doc.resolvable == []
        assert [f.reason for f in doc.failed_uploads] == ["unreadable image: denied"] * 2
        assert report.references_failed == 2
        assert report.files_modified == 0
        assert (root / "doc.md").read_text() == "![a](a.png) ![a](a.png)\n"

    @pytest.mark.asyncio
    async def test_unresolved_reported(self, tmp_path, sample_config):
        root = make_vault(tmp_path / "v", {"doc.md": "![[ghost.png]]\n"})
        report = await MigrationOrchestrator(sample_config).run(root, dry_run=True)
        assert report.references_failed == 1
        assert report.files_modified == 0


# ── Placeholders ────────────────────────────────────────────────────


class TestPlaceholders:
    @pytest.mark.asyncio
    async def test_reported_not_migrated(self, vault, sample_config, memory_store):
        (vault / "notes" / "old.md").write_text(f"{PLACEHOLDER}\n")
        report = await MigrationOrchestrator(sample_config, memory_store).run(vault)

        assert report.placeholders_found == 1
        assert (vault / "notes" / "old.md").read_text() == f"{PLACEHOLDER}\n"

    @pytest.mark.asyncio
    async def test_repaired_in_memory_then_migrated(self, vault, memory_store):
        (vault / "notes" / "old.md").write_text(f"{PLACEHOLDER}\n")
        config = NoteliftConfig(scan=ScanConfig(repair_placeholders=True))
        report = await MigrationOrchestrator(config, memory_store).run(vault)

        url = _url_for(memory_store, PNG_B)
        assert (vault / "notes" / "old.md").read_text() == f"![]({url})\n"
        assert _file(report, "old.md").placeholders_repaired == 1
        assert report.placeholders_found == 0

    def test_repair_operation(self, vault, sample_config):
        (vault / "notes" / "old.md").write_text(f"x {PLACEHOLDER} y {PLACEHOLDER}\n")
        orchestrator = MigrationOrchestrator(sample_config)

        preview = orchestrator.repair_placeholders(vault, dry_run=True)
        assert preview.links_repaired == 2
        assert PLACEHOLDER in (vault / "notes" / "old.md").read_text()

        report = orchestrator.repair_placeholders(vault)
        assert report.files_modified == 1
        assert report.repaired == {"notes/old.md": 2}
        assert (vault / "notes" / "old.md").read_text() == "x ![[shot.png]] y ![[shot.png]]\n"


# ── Synchronous entry point ─────────────────────────────────────────


class TestRunMigration:
    def test_builds_store_from_config(self, vault):
        config = NoteliftConfig(store=StoreConfig(provider="memory"))
        report = run_migration(vault, config=config)
        assert report.references_replaced == 4
        assert "![[shot.png]]" not in (vault / "notes" / "a.md").read_text()

    def test_dry_run(self, vault):
        report = run_migration(vault, dry_run=True)
        assert report.references_resolvable == 4
        assert "![[shot.png]]" in (vault / "notes" / "a.md").read_text()
