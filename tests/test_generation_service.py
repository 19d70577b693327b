"""GenerationService: ad copy parsing, compliance gate, embedding, variations."""

import json

import pytest

from sponsorcast.domain.errors import MALFORMED_OUTPUT, AIServiceError, ComplianceViolation, ServiceKind
from sponsorcast.domain.scoring import AD_END, AD_START
from sponsorcast.domain.script_markers import insert_ad_block
from sponsorcast.domain.sponsorship import AdContent, AdPreferences
from sponsorcast.services.compliance import ComplianceService
from sponsorcast.services.generation_service import GenerationService, clean_script

from fakes import (
    AD_COPY,
    COMPLIANCE,
    EMBED,
    OfflineGenerator,
    RoutedGenerator,
    ScriptedGenerator,
    ad_json,
    compliant_json,
    make_campaign,
    make_invoker,
    make_owner,
    make_settings,
)

SCRIPT = "\n".join(f"MAYA: line {i}" for i in range(10))


def _service(generator) -> GenerationService:
    invoker = make_invoker(generator, ServiceKind.generation)
    return GenerationService(invoker, ComplianceService(invoker), settings=make_settings())


class TestParseAdContent:

    def test_full_payload(self):
        text = ad_json(placement="intro", duration="45", requiredElements=["BYTE10"], styleNotes=["upbeat"])
        ad = _service(OfflineGenerator()).parse_ad_content(text)
        assert ad.placement == "intro"
        assert ad.duration == 45
        assert ad.required_elements == ["BYTE10"]
        assert ad.style_notes == ["upbeat"]

    @pytest.mark.parametrize("raw,expected", [(5, 15), (120, 60), (None, 30), ("", 30), ("22.7", 22)])
    def test_duration_is_defaulted_and_clamped(self, raw, expected):
        ad = _service(OfflineGenerator()).parse_ad_content(ad_json(duration=raw))
        assert ad.duration == expected

    def test_empty_placement_defaults_to_mid_roll(self):
        ad = _service(OfflineGenerator()).parse_ad_content(ad_json(placement=""))
        assert ad.placement == "mid-roll"

    @pytest.mark.parametrize(
        "payload",
        [
            {"placement": "intro"},
            {"script": "   ", "placement": "intro"},
            {"script": "Sponsored by ByteBox."},
            {"script": "Sponsored by ByteBox.", "placement": "pre-roll"},
            {"script": "Sponsored by ByteBox.", "placement": "intro", "duration": "long"},
        ],
    )
    def test_unusable_payloads_are_malformed(self, payload):
        with pytest.raises(AIServiceError) as exc_info:
            _service(OfflineGenerator()).parse_ad_content(json.dumps(payload))
        assert exc_info.value.code == MALFORMED_OUTPUT
        assert exc_info.value.retryable is False

    def test_fenced_payload_parses(self):
        ad = _service(OfflineGenerator()).parse_ad_content(f"```json\n{ad_json()}\n```")
        assert ad.script.startswith("This episode is sponsored by ByteBox")


class TestGenerateAdContent:

    def test_compliant_copy_is_returned(self):
        generator = RoutedGenerator({AD_COPY: ad_json(), COMPLIANCE: compliant_json()})
        ad = _service(generator).generate_ad_content(make_owner(), make_campaign())
        assert ad.placement == "mid-roll"
        assert len(generator.calls_for(COMPLIANCE)) == 1
        prompt = generator.calls_for(AD_COPY)[0]
        assert "ByteBox Cloud Backup" in prompt
        assert "MAYA (curious), LEO" in prompt

    def test_misleading_copy_raises_violation(self):
        # compliance model offline, so the rule-based review applies
        generator = RoutedGenerator({AD_COPY: ad_json("Sponsored by ByteBox. Guaranteed to never lose a file.")})
        with pytest.raises(ComplianceViolation) as exc_info:
            _service(generator).generate_ad_content(make_owner(), make_campaign())
        assert exc_info.value.campaign_id == "cmp-1"
        assert any("guaranteed" in v for v in exc_info.value.violations)

    def test_model_compliance_verdict_is_respected(self):
        verdict = json.dumps({"compliant": False, "violations": ["Unverifiable claim"], "severity": "high"})
        generator = RoutedGenerator({AD_COPY: ad_json(), COMPLIANCE: verdict})
        with pytest.raises(ComplianceViolation):
            _service(generator).generate_ad_content(make_owner(), make_campaign())

    def test_offline_model_raises_service_error(self):
        with pytest.raises(AIServiceError):
            _service(OfflineGenerator()).generate_ad_content(make_owner(), make_campaign())

    def test_prose_answer_is_malformed(self):
        generator = RoutedGenerator({AD_COPY: "Here is a great ad for ByteBox!"})
        with pytest.raises(AIServiceError) as exc_info:
            _service(generator).generate_ad_content(make_owner(), make_campaign())
        assert exc_info.value.code == MALFORMED_OUTPUT

    @pytest.mark.parametrize(
        "overrides,expected",
        [
            ({"length_minutes": 10}, "intro"),
            ({"length_minutes": 60}, "mid-roll"),
            ({"length_minutes": 25}, "natural"),
            ({"ad_preferences": AdPreferences(preferred_ad_placement="outro")}, "outro"),
        ],
    )
    def test_preferred_placement(self, overrides, expected):
        assert GenerationService.preferred_placement(make_owner(**overrides)) == expected


class TestEmbed:

    def test_marked_model_output_is_used(self):
        merged = f"MAYA: hi\n\n\n\n{AD_START}\nSponsored by ByteBox.\n{AD_END}\nLEO: back"
        generator = RoutedGenerator({EMBED: f"```\n{merged}\n```"})
        ad = AdContent(script="Sponsored by ByteBox.")
        result = _service(generator).embed_ad_in_script(SCRIPT, ad)
        assert result == f"MAYA: hi\n\n{AD_START}\nSponsored by ByteBox.\n{AD_END}\nLEO: back"

    def test_unmarked_output_uses_line_fallback(self):
        ad = AdContent(script="Sponsored by ByteBox.", placement="intro")
        generator = RoutedGenerator({EMBED: "MAYA: I rewrote everything"})
        assert _service(generator).embed_ad_in_script(SCRIPT, ad) == insert_ad_block(SCRIPT, ad)

    def test_offline_model_uses_line_fallback(self):
        ad = AdContent(script="Sponsored by ByteBox.", placement="outro")
        result = _service(OfflineGenerator()).embed_ad_in_script(SCRIPT, ad)
        assert result == insert_ad_block(SCRIPT, ad)
        assert result.split("\n")[9] == AD_START


class TestVariationsAndStyle:

    def test_failed_variations_are_skipped(self):
        generator = ScriptedGenerator("Version one.", ConnectionError("reset"), "Version three.")
        base = AdContent(script="Sponsored by ByteBox.", placement="intro", style_notes=["warm"])
        variations = _service(generator).generate_variations(base, 3)
        assert [v.script for v in variations] == ["Version one.", "Version three."]
        assert all(v.placement == "intro" and v.style_notes == ["warm"] for v in variations)
        assert base.script == "Sponsored by ByteBox."

    def test_style_failure_returns_original(self):
        assert _service(OfflineGenerator()).optimize_for_style("Buy ByteBox.", make_owner()) == "Buy ByteBox."

    def test_style_answer_is_cleaned(self):
        service = _service(ScriptedGenerator("```\nByteBox, the backup we both use.\n```"))
        assert service.optimize_for_style("Buy ByteBox.", make_owner()) == "ByteBox, the backup we both use."


def test_clean_script_collapses_blank_runs():
    assert clean_script("```\nA\n\n\n\nB\n```") == "A\n\nB"
