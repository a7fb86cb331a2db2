"""
Integration tests for the complete analysis pipeline.
Tests the end-to-end workflow from raw VCF text to the aggregated response.
"""

import asyncio

import pytest

from conftest import build_vcf, vcf_line
from pharmaguard.core.config import get_settings
from pharmaguard.core.errors import (
    InputValidationError,
    MissingDrugError,
    VcfFormatError,
    VcfParseError,
)
from pharmaguard.services.pipeline.analysis_pipeline import (
    RARE_VARIANT_MESSAGE,
    adjust_confidence_for_rare_variants,
    normalize_ancestry,
    parse_drug_names,
    run_analysis_pipeline,
)


def run(content, drugs, ancestry="global", **kwargs):
    return asyncio.run(run_analysis_pipeline(content, drugs, ancestry, **kwargs))


class TestEndToEndWorkflow:
    """Complete workflow from VCF text to risk results."""

    def test_codeine_poor_metabolizer(self, codeine_pm_vcf, engine):
        response = run(codeine_pm_vcf, "CODEINE", risk_engine=engine)
        result = response.result

        assert result == response.results[0]
        assert result.pharmacogenomic_profile.phenotype == "Poor Metabolizer"
        assert result.pharmacogenomic_profile.diplotype == "*4/*4"
        assert result.risk_assessment.risk_label == "Ineffective"
        assert result.clinical_recommendation.alternatives
        assert result.llm_generated_explanation.model_used == "template-fallback"
        assert result.llm_generated_explanation.variant_citations.startswith("rs3892097 in CYP2D6 (*4)")

    def test_unsupported_drug(self, codeine_pm_vcf):
        result = run(codeine_pm_vcf, "ASPIRIN").result

        assert result.risk_assessment.risk_label == "Unknown"
        assert result.risk_assessment.confidence_score == 0
        for drug in ("CODEINE", "WARFARIN", "CLOPIDOGREL", "SIMVASTATIN", "AZATHIOPRINE", "FLUOROURACIL"):
            assert drug in result.clinical_recommendation.action

    def test_no_pgx_variants_warfarin(self, no_pgx_vcf):
        response = run(no_pgx_vcf, "WARFARIN")
        result = response.result

        assert result.pharmacogenomic_profile.diplotype == "*1/*1"
        assert result.pharmacogenomic_profile.phenotype == "Normal Metabolizer"
        assert result.risk_assessment.risk_label == "Safe"
        assert response.metadata.total_variants == 1
        assert response.metadata.pgx_variants == 0

    def test_multiple_drugs(self, codeine_pm_vcf):
        response = run(codeine_pm_vcf, " codeine, warfarin ,, aspirin ")

        assert [r.drug for r in response.results] == ["CODEINE", "WARFARIN", "ASPIRIN"]
        assert response.result is None
        assert response.metadata.drugs_analyzed == 3
        assert len(response.safety_index.breakdown) == 3

    def test_safety_index_included(self, codeine_pm_vcf):
        index = run(codeine_pm_vcf, "CODEINE").safety_index

        assert index.score == 70
        assert index.level == "Moderate"

    def test_quality_metrics_filled(self, codeine_pm_vcf):
        qm = run(codeine_pm_vcf, "CODEINE").result.quality_metrics

        assert qm.vcf_parsing_success is True
        assert qm.total_variants_in_file == 1
        assert qm.pgx_variants_detected == 1
        assert qm.vcf_version == "VCFv4.2"
        assert qm.parse_warnings == []

    def test_partial_parse_errors_surface(self):
        content = build_vcf("bad\tline", vcf_line())
        response = run(content, "CODEINE")

        assert response.metadata.parse_errors == ["Line 4: insufficient fields (expected >=8, got 2)"]
        assert response.result.quality_metrics.parse_warnings == response.metadata.parse_errors

    def test_bytes_content(self, codeine_pm_vcf):
        response = run(codeine_pm_vcf.encode("utf-8"), "CODEINE")
        assert response.result.risk_assessment.risk_label == "Ineffective"


class TestPopulationContext:
    """Ancestry-aware annotation of detected variants."""

    @pytest.fixture
    def rare_vcf(self):
        """CYP2D6 *3 (rs35742686): 0% in East Asian, 2% globally."""
        return build_vcf(vcf_line(pos=42128242, rsid="rs35742686", ref="T", alt="-", gt="1/1"))

    def test_global_ancestry(self, codeine_pm_vcf):
        response = run(codeine_pm_vcf, "CODEINE")
        result = response.result
        dv = result.pharmacogenomic_profile.detected_variants[0]

        assert response.ancestry == "global"
        assert result.population_context.ancestry == "global"
        assert result.population_context.applied is False
        assert dv.population_freq.frequency == 0.20
        assert dv.inheritance.zygosity == "Homozygous"
        assert result.rare_variant_warnings == []

    def test_rare_variant_lowers_confidence(self, rare_vcf):
        result = run(rare_vcf, "CODEINE", "East_Asian").result

        assert result.population_context.applied is True
        assert len(result.rare_variant_warnings) == 1
        warning = result.rare_variant_warnings[0]
        assert warning.rsid == "rs35742686"
        assert warning.gene == "CYP2D6"
        assert warning.message == RARE_VARIANT_MESSAGE
        # 0.74 - 0.05
        assert result.risk_assessment.confidence_score == 0.69

    def test_same_variant_not_rare_globally(self, rare_vcf):
        result = run(rare_vcf, "CODEINE").result

        assert result.rare_variant_warnings == []
        assert result.risk_assessment.confidence_score == 0.74

    def test_rare_adjustment_floor(self):
        assert adjust_confidence_for_rare_variants(0.74, 0) == 0.74
        assert adjust_confidence_for_rare_variants(0.74, 2) == 0.64
        assert adjust_confidence_for_rare_variants(0.3, 5) == 0.2
        assert adjust_confidence_for_rare_variants(0.1, 1) == 0.1


class TestInputErrors:
    """Input, format and parse failures raise typed errors."""

    def test_empty_content(self):
        with pytest.raises(InputValidationError):
            run("", "CODEINE")

    def test_missing_fileformat(self):
        with pytest.raises(VcfFormatError) as exc:
            run("#CHROM\tPOS\n", "CODEINE")
        assert exc.value.to_dict()["error_code"] == "INVALID_FILE_FORMAT"
        assert exc.value.to_dict()["quality_metrics"] == {"vcf_parsing_success": False}

    def test_no_drugs(self, codeine_pm_vcf):
        with pytest.raises(MissingDrugError):
            run(codeine_pm_vcf, " , ,")

    def test_unsupported_ancestry(self, codeine_pm_vcf):
        with pytest.raises(InputValidationError, match="ancestry"):
            run(codeine_pm_vcf, "CODEINE", "martian")

    def test_only_malformed_lines(self):
        with pytest.raises(VcfParseError) as exc:
            run(build_vcf("garbage"), "CODEINE")
        assert exc.value.parse_errors == ["Line 4: insufficient fields (expected >=8, got 1)"]
        assert exc.value.to_dict()["quality_metrics"] == {"vcf_parsing_success": False}

    def test_input_errors_carry_no_quality_metrics(self):
        with pytest.raises(InputValidationError) as exc:
            run("", "CODEINE")
        assert "quality_metrics" not in exc.value.to_dict()

    def test_size_limit_from_settings(self, codeine_pm_vcf, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", "64")
        get_settings.cache_clear()

        with pytest.raises(InputValidationError) as exc:
            run(codeine_pm_vcf, "CODEINE")
        assert exc.value.details.startswith("File exceeds")

    def test_raised_size_limit_accepts_large_file(self, monkeypatch):
        monkeypatch.setenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))
        get_settings.cache_clear()
        padding = "##note=" + "x" * (6 * 1024 * 1024)
        content = build_vcf(vcf_line(gt="1/1"), fileformat="##fileformat=VCFv4.2\n" + padding)

        response = run(content, "CODEINE")

        assert response.result.pharmacogenomic_profile.diplotype == "*4/*4"


class TestHelpers:

    def test_parse_drug_names(self):
        assert parse_drug_names("codeine, Warfarin") == ["CODEINE", "WARFARIN"]
        assert parse_drug_names(None) == []

    def test_normalize_ancestry(self):
        assert normalize_ancestry(None) == "global"
        assert normalize_ancestry("  ") == "global"
        assert normalize_ancestry("EUROPEAN") == "european"
