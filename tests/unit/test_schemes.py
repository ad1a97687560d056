"""Tests for scheme records, the versioned repository and the read-through cache."""

import pytest

from scheme_assistant.config import SupportedLanguage
from scheme_assistant.errors import SchemeNotFound, TransientExternalFailure, ValidationFailure
from scheme_assistant.resilience import RetryPolicy
from scheme_assistant.tools.cache import SchemeCache
from scheme_assistant.tools.eligibility import PredicateRegistry
from scheme_assistant.tools.repository import InMemorySchemeRepository, to_scheme


def _text(value: str) -> dict:
    return {"english": value, "hindi": f"{value} (hi)", "tamil": f"{value} (ta)"}


def _record(scheme_id: str = "test_scheme", category: str = "welfare", **extra) -> dict:
    record = {
        "id": scheme_id,
        "name": _text("Test Scheme"),
        "description": _text("A scheme used in tests"),
        "category": category,
        "criteria": [{"name": "adult", "field": "age", "kind": "range", "minimum": 18}],
    }
    record.update(extra)
    return record


class FlakyRepository(InMemorySchemeRepository):
    """Fails current_version a set number of times before answering"""

    def __init__(self, failures: int, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.failures = failures
        self.version_calls = 0

    async def current_version(self, scheme_id: str) -> int:
        self.version_calls += 1
        if self.failures > 0:
            self.failures -= 1
            raise TransientExternalFailure("repository offline", capability="scheme_repository")
        return await super().current_version(scheme_id)


# =============================================================================
# Record validation
# =============================================================================


class TestSchemeRecord:
    def test_valid_record(self):
        scheme = to_scheme(_record())

        assert scheme.version == 1
        assert scheme.name[SupportedLanguage.HINDI] == "Test Scheme (hi)"

    def test_partial_language_map_is_rejected(self):
        record = _record(name={"english": "Only English", "hindi": "केवल"})

        with pytest.raises(ValidationFailure) as exc_info:
            to_scheme(record)

        assert "tamil" in str(exc_info.value)
        assert exc_info.value.field == "name"

    def test_blank_translation_is_rejected(self):
        record = _record(description={"english": "x", "hindi": "y", "tamil": "   "})

        with pytest.raises(ValidationFailure):
            to_scheme(record)

    def test_missing_id_is_rejected(self):
        record = _record()
        del record["id"]

        with pytest.raises(ValidationFailure):
            to_scheme(record)

    def test_malformed_criterion_is_rejected(self):
        record = _record(criteria=[{"name": "age", "field": "age", "kind": "range"}])

        with pytest.raises(ValidationFailure):
            to_scheme(record)

    def test_duplicate_criterion_names_are_rejected(self):
        criterion = {"name": "adult", "field": "age", "kind": "range", "minimum": 18}

        with pytest.raises(ValidationFailure):
            to_scheme(_record(criteria=[criterion, criterion]))

    def test_localized_projection(self):
        scheme = to_scheme(_record(
            application_steps=[{"instruction": _text("Visit the office")}],
            documents=[_text("Aadhaar")],
        ))

        tamil = scheme.localized(SupportedLanguage.TAMIL)

        assert tamil.name == "Test Scheme (ta)"
        assert tamil.application_steps == ("Visit the office (ta)",)
        assert tamil.documents == ("Aadhaar (ta)",)
        assert tamil.language == SupportedLanguage.TAMIL


# =============================================================================
# Repository
# =============================================================================


class TestRepository:
    @pytest.mark.asyncio
    async def test_update_keeps_prior_versions(self, repository):
        updated = await repository.update("pmjdy", {"website": "https://example.gov.in"})

        assert updated.version == 2
        assert (await repository.read("pmjdy")).website == "https://example.gov.in"
        assert (await repository.read("pmjdy", version=1)).website != "https://example.gov.in"
        assert [s.version for s in await repository.history("pmjdy")] == [1, 2]

    @pytest.mark.asyncio
    async def test_update_cannot_change_id_or_version(self, repository):
        updated = await repository.update("pmjdy", {"id": "other", "version": 40})

        assert updated.id == "pmjdy"
        assert updated.version == 2

    @pytest.mark.asyncio
    async def test_invalid_update_stores_nothing(self, repository):
        with pytest.raises(ValidationFailure):
            await repository.update("pmjdy", {"name": {"english": "Only English"}})

        assert await repository.current_version("pmjdy") == 1

    @pytest.mark.asyncio
    async def test_create_rejects_duplicates(self, repository):
        with pytest.raises(ValidationFailure):
            await repository.create(_record("pmjdy"))

    @pytest.mark.asyncio
    async def test_withdrawn_scheme_keeps_history(self, repository):
        assert await repository.delete("pmsby")

        with pytest.raises(SchemeNotFound):
            await repository.read("pmsby")
        assert "pmsby" not in [s.id for s in await repository.list_all()]
        assert len(await repository.history("pmsby")) == 1
        assert not await repository.delete("pmsby")

    @pytest.mark.asyncio
    async def test_republishing_continues_version_line(self, repository):
        await repository.delete("pmsby")

        again = await repository.create(_record("pmsby", category="insurance"))

        assert again.version == 2

    @pytest.mark.asyncio
    async def test_list_by_category(self, repository):
        pensions = await repository.list_by_category("Pension")

        assert [s.id for s in pensions] == ["disability_pension", "old_age_pension", "widow_pension"]

    @pytest.mark.asyncio
    async def test_unknown_version(self, repository):
        with pytest.raises(SchemeNotFound) as exc_info:
            await repository.read("pmjdy", version=9)

        assert exc_info.value.version == 9

    @pytest.mark.asyncio
    async def test_unknown_predicate_is_rejected_before_storing(self, repository):
        criteria = [{"name": "mystery", "field": "is_bpl", "kind": "custom", "predicate": "no_such_predicate"}]

        with pytest.raises(ValidationFailure) as exc_info:
            await repository.update("pmjdy", {"criteria": criteria})
        with pytest.raises(ValidationFailure):
            await repository.create(_record("mystery_scheme", criteria=criteria))

        assert exc_info.value.field == "criteria"
        assert await repository.current_version("pmjdy") == 1
        assert "mystery_scheme" not in [s.id for s in await repository.list_all()]

    @pytest.mark.asyncio
    async def test_registered_predicate_is_accepted(self):
        registry = PredicateRegistry()
        registry.register("is_even", lambda v: int(v) % 2 == 0)
        repository = InMemorySchemeRepository(registry=registry)
        criteria = [{"name": "even_age", "field": "age", "kind": "custom", "predicate": "is_even"}]

        created = await repository.create(_record(criteria=criteria))

        assert created.criteria[0].predicate == "is_even"

    @pytest.mark.asyncio
    async def test_returned_records_do_not_share_state(self, repository):
        read = await repository.read("pmjdy")
        read.name[SupportedLanguage.ENGLISH] = "Changed"
        listed = (await repository.list_all())[0]
        listed.description[SupportedLanguage.ENGLISH] = "Changed"

        assert (await repository.read("pmjdy")).name[SupportedLanguage.ENGLISH] != "Changed"
        assert (await repository.history("pmjdy"))[0].name[SupportedLanguage.ENGLISH] != "Changed"
        assert (await repository.read(listed.id)).description[SupportedLanguage.ENGLISH] != "Changed"


# =============================================================================
# Cache
# =============================================================================


class TestSchemeCache:
    @pytest.mark.asyncio
    async def test_hit_after_warm(self, cache):
        await cache.warm()

        scheme = await cache.get("pm_kisan", SupportedLanguage.ENGLISH)

        assert scheme.name == "PM Kisan Samman Nidhi"
        assert cache.hits == 1
        assert cache.misses == 0

    @pytest.mark.asyncio
    async def test_miss_then_hit(self, cache):
        await cache.get("pmay", SupportedLanguage.ENGLISH)
        await cache.get("pmay", SupportedLanguage.HINDI)

        assert cache.misses == 1
        assert cache.hits == 1

    @pytest.mark.asyncio
    async def test_language_switch_uses_same_record(self, cache):
        english = await cache.get("pmay", SupportedLanguage.ENGLISH)
        tamil = await cache.get("pmay", SupportedLanguage.TAMIL)

        assert english.name != tamil.name
        assert english.version == tamil.version
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_update_is_never_served_stale(self, cache, repository):
        await cache.warm()
        await repository.update("pmjdy", {"website": "https://new.gov.in"})

        scheme = await cache.get("pmjdy", SupportedLanguage.ENGLISH)

        assert scheme.version == 2
        assert scheme.website == "https://new.gov.in"
        assert cache.misses == 1

    @pytest.mark.asyncio
    async def test_withdrawn_scheme_is_evicted(self, cache, repository):
        await cache.warm()
        await repository.delete("pmsby")

        with pytest.raises(SchemeNotFound):
            await cache.get("pmsby", SupportedLanguage.ENGLISH)

        assert "pmsby" not in cache

    @pytest.mark.asyncio
    async def test_full_listing_drops_withdrawn(self, cache, repository):
        await cache.warm()
        await repository.delete("pmsby")

        listed = await cache.list(SupportedLanguage.ENGLISH)

        assert "pmsby" not in [s.id for s in listed]
        assert "pmsby" not in cache

    @pytest.mark.asyncio
    async def test_category_listing(self, cache):
        listed = await cache.list(SupportedLanguage.HINDI, category="housing")

        assert [s.id for s in listed] == ["pmay"]
        assert listed[0].language == SupportedLanguage.HINDI
        assert "pmay" in cache

    @pytest.mark.asyncio
    async def test_transient_repository_failure_is_retried(self):
        repository = FlakyRepository(2, [_record()])
        cache = SchemeCache(repository, RetryPolicy.no_delay(max_attempts=3))

        scheme = await cache.get("test_scheme", SupportedLanguage.ENGLISH)

        assert scheme.id == "test_scheme"
        assert repository.version_calls == 3

    @pytest.mark.asyncio
    async def test_exhausted_retries_surface_transient_failure(self):
        repository = FlakyRepository(5, [_record()])
        cache = SchemeCache(repository, RetryPolicy.no_delay(max_attempts=2))

        with pytest.raises(TransientExternalFailure):
            await cache.get("test_scheme", SupportedLanguage.ENGLISH)

        assert repository.version_calls == 2

    @pytest.mark.asyncio
    async def test_cached_record_cannot_be_changed_by_callers(self, cache, repository):
        record = await cache.get_record("pmjdy")
        record.name[SupportedLanguage.ENGLISH] = "Changed"
        for cached in cache.cached_schemes():
            cached.name[SupportedLanguage.ENGLISH] = "Changed"

        assert (await cache.get_record("pmjdy")).name[SupportedLanguage.ENGLISH] != "Changed"
        assert (await cache.get("pmjdy", SupportedLanguage.ENGLISH)).name != "Changed"
        assert (await repository.history("pmjdy"))[0].name[SupportedLanguage.ENGLISH] != "Changed"

    @pytest.mark.asyncio
    async def test_refresh_follows_repository(self, cache, repository):
        await cache.warm()
        await repository.update("pmjdy", {"website": "https://new.gov.in"})
        await repository.delete("pmsby")

        records = {r.id: r for r in await cache.refresh()}

        assert records["pmjdy"].version == 2
        assert "pmsby" not in records
        assert "pmsby" not in cache
        assert cache.scheme_names()["pmay"][0] == "Pradhan Mantri Awas Yojana"
