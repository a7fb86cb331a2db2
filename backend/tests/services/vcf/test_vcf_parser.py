"""
Unit tests for the VCF parser.
Tests header handling, per-line error collection, INFO/genotype extraction and
pharmacogenomic relevance filtering.
"""

from conftest import HEADER, build_vcf, vcf_line
from pharmaguard.core.config import get_settings
from pharmaguard.services.vcf.parser import (
    SOURCE_INFO_RS,
    SOURCE_RSID_LOOKUP,
    SOURCE_VCF_INFO,
    extract_rsids,
    parse_vcf,
    validate_vcf,
)


class TestParseHeader:
    """File-format declaration and column header handling."""

    def test_valid_file_has_no_errors(self, codeine_pm_vcf):
        result = parse_vcf(codeine_pm_vcf)

        assert result.errors == []
        assert result.metadata.fileformat == "VCFv4.2"
        assert result.metadata.sample_ids == ["SAMPLE1"]
        assert result.metadata.header_fields[:3] == ["CHROM", "POS", "ID"]
        assert "##source=unit-test" in result.metadata.meta_lines

    def test_missing_fileformat_fails_fast(self):
        content = HEADER + "\n" + vcf_line()
        result = parse_vcf(content)

        assert result.variants == []
        assert result.errors == ["Invalid VCF file: missing ##fileformat=VCF header line"]

    def test_leading_blank_lines_are_skipped(self, codeine_pm_vcf):
        result = parse_vcf("\n\n" + codeine_pm_vcf)

        assert result.errors == []
        assert len(result.variants) == 1

    def test_missing_column_header_reported(self):
        content = "##fileformat=VCFv4.2\n" + vcf_line() + "\n"
        result = parse_vcf(content)

        assert "Invalid VCF: no header line (#CHROM ...) found" in result.errors
        assert len(result.variants) == 1

    def test_lowercase_column_header_accepted(self):
        content = build_vcf(vcf_line(), header=HEADER.replace("#CHROM", "#chrom"))
        assert parse_vcf(content).errors == []

    def test_crlf_line_endings(self, codeine_pm_vcf):
        result = parse_vcf(codeine_pm_vcf.replace("\n", "\r\n"))

        assert result.errors == []
        assert result.variants[0].genotype == "1/1"

    def test_bytes_input(self, codeine_pm_vcf):
        result = parse_vcf(codeine_pm_vcf.encode("utf-8"))
        assert len(result.variants) == 1


class TestMalformedLines:
    """Partial-success policy: bad lines are reported and skipped."""

    def test_short_line_reports_error_and_continues(self):
        content = build_vcf("22\t42130692\trs3892097\tG", vcf_line(rsid="rs4244285", chrom="10"))
        result = parse_vcf(content)

        assert result.errors == ["Line 4: insufficient fields (expected >=8, got 4)"]
        assert [v.rsids[0] for v in result.variants] == ["rs4244285"]

    def test_invalid_pos_reports_error(self):
        content = build_vcf(vcf_line(pos="abc"), vcf_line(rsid="rs1799853", chrom="10"))
        result = parse_vcf(content)

        assert result.errors == ["Line 4: invalid POS value 'abc'"]
        assert len(result.variants) == 1
        assert result.metadata.total_variants == 1

    def test_only_bad_lines_yields_no_variants(self):
        result = parse_vcf(build_vcf("garbage line"))

        assert result.variants == []
        assert result.errors
        assert not result.success


class TestFieldExtraction:
    """Numeric fields, INFO parsing and genotype extraction."""

    def test_dot_quality_is_none(self):
        result = parse_vcf(build_vcf(vcf_line(qual=".")))
        assert result.variants[0].qual is None

    def test_numeric_fields(self, codeine_pm_vcf):
        variant = parse_vcf(codeine_pm_vcf).variants[0]

        assert variant.pos == 42130692
        assert variant.qual == 60.0
        assert variant.genotype_quality == 99.0
        assert variant.alt == ("A",)
        assert variant.filter == "PASS"

    def test_info_flags_and_values(self):
        variant = parse_vcf(build_vcf(vcf_line(info="DP=30;DB;AF=0.5"))).variants[0]

        assert variant.info == {"DP": "30", "DB": True, "AF": "0.5"}

    def test_genotype_found_positionally(self):
        line = "\t".join(["22", "42130692", "rs3892097", "G", "A", "60", "PASS", ".", "GQ:DP:GT", "80:20:0|1"])
        variant = parse_vcf(build_vcf(line)).variants[0]

        assert variant.genotype == "0|1"
        assert variant.genotype_quality == 80.0

    def test_no_sample_columns(self):
        line = "\t".join(["22", "42130692", "rs3892097", "G", "A", "60", "PASS", "."])
        variant = parse_vcf(build_vcf(line)).variants[0]

        assert variant.genotype is None
        assert variant.genotype_quality is None

    def test_multiple_alt_alleles(self):
        variant = parse_vcf(build_vcf(vcf_line(alt="A,T"))).variants[0]
        assert variant.alt == ("A", "T")

    def test_extract_rsids(self):
        assert extract_rsids("rs1;rs2, rs3") == ["rs1", "rs2", "rs3"]
        assert extract_rsids(".") == []
        assert extract_rsids("COSM123;rs5") == ["rs5"]


class TestRelevanceFilter:
    """Only pharmacogenomically relevant variants are retained."""

    def test_non_pgx_variant_discarded(self, no_pgx_vcf):
        result = parse_vcf(no_pgx_vcf)

        assert result.variants == []
        assert result.errors == []
        assert result.metadata.total_variants == 1
        assert result.metadata.pgx_variants == 0

    def test_rsid_lookup_annotation(self, codeine_pm_vcf):
        ann = parse_vcf(codeine_pm_vcf).variants[0].pgx_annotations

        assert len(ann) == 1
        assert ann[0].gene == "CYP2D6"
        assert ann[0].star_allele == "*4"
        assert ann[0].function == "No function"
        assert ann[0].activity_score == 0.0
        assert ann[0].source == SOURCE_RSID_LOOKUP

    def test_info_gene_case_insensitive(self):
        line = vcf_line(rsid=".", info="GENE=cyp2c19;STAR=*2")
        ann = parse_vcf(build_vcf(line)).variants[0].pgx_annotations

        assert ann[0].gene == "CYP2C19"
        assert ann[0].star_allele == "*2"
        assert ann[0].source == SOURCE_VCF_INFO

    def test_unknown_info_gene_ignored(self):
        line = vcf_line(rsid=".", info="GENE=BRCA1")
        assert parse_vcf(build_vcf(line)).variants == []

    def test_info_rs_without_prefix(self):
        line = vcf_line(rsid=".", info="RS=4244285")
        variant = parse_vcf(build_vcf(line)).variants[0]

        assert variant.rsids == ("rs4244285",)
        assert variant.pgx_annotations[0].source == SOURCE_INFO_RS
        assert variant.pgx_annotations[0].star_allele == "*2"

    def test_no_duplicate_gene_star_pairs(self):
        # INFO annotation and rsID lookup both name CYP2D6 *4
        line = vcf_line(rsid="rs3892097", info="GENE=CYP2D6;STAR=*4;RS=rs3892097")
        ann = parse_vcf(build_vcf(line)).variants[0].pgx_annotations

        pairs = [(a.gene, a.star_allele) for a in ann]
        assert pairs == [("CYP2D6", "*4")]
        assert ann[0].source == SOURCE_VCF_INFO

    def test_rsid_shared_by_alleles_annotates_each(self):
        line = vcf_line(chrom="12", rsid="rs4149056", ref="T", alt="C")
        stars = [a.star_allele for a in parse_vcf(build_vcf(line)).variants[0].pgx_annotations]

        assert stars == ["*5", "*15"]

    def test_idempotent(self, codeine_pm_vcf):
        assert parse_vcf(codeine_pm_vcf).variants == parse_vcf(codeine_pm_vcf).variants


class TestValidateVcf:
    """Cheap pre-check before parsing."""

    def test_valid(self, codeine_pm_vcf):
        validation = validate_vcf(codeine_pm_vcf)
        assert validation.valid
        assert validation.error is None

    def test_empty(self):
        assert validate_vcf("").error == "Empty or invalid file content"
        assert validate_vcf(None).error == "Empty or invalid file content"
        assert validate_vcf(b"##fileformat=VCFv4.2").error == "Empty or invalid file content"

    def test_too_large(self):
        content = "##fileformat=VCFv4.2\n" + "x" * (5 * 1024 * 1024)
        assert validate_vcf(content).error == "File exceeds 5 MB size limit"

    def test_explicit_limit(self, codeine_pm_vcf):
        assert not validate_vcf(codeine_pm_vcf, max_bytes=64).valid
        assert validate_vcf(codeine_pm_vcf, max_bytes=len(codeine_pm_vcf)).valid

    def test_limit_follows_settings(self, monkeypatch):
        """MAX_UPLOAD_BYTES raises the ceiling for the pre-check too."""
        monkeypatch.setenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))
        get_settings.cache_clear()
        content = "##fileformat=VCFv4.2\n" + "x" * (6 * 1024 * 1024)

        assert validate_vcf(content).valid

    def test_missing_magic_header(self):
        validation = validate_vcf(HEADER + "\n")

        assert not validation.valid
        assert validation.error == "Invalid VCF format: file must begin with ##fileformat=VCFv4.x"
