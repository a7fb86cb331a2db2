from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

from pharmaguard.core.config import get_settings, size_limit_message
from pharmaguard.services.pharmacogenomics.knowledge_base import KnowledgeBase, get_knowledge_base

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Constants & Configuration
# ----------------------------------------------------------------------

FILEFORMAT_PREFIX = "##fileformat=VCF"

MIN_DATA_COLUMNS = 8

# Annotation sources
SOURCE_VCF_INFO = "VCF_INFO"
SOURCE_RSID_LOOKUP = "rsID_lookup"
SOURCE_INFO_RS = "INFO_RS"

_LINE_SPLIT = re.compile(r"\r?\n")
_ID_SPLIT = re.compile(r"[;,]")

InfoValue = Union[str, bool]


@dataclass(frozen=True)
class PgxAnnotation:
    gene: str
    star_allele: Optional[str] = None
    function: Optional[str] = None
    activity_score: Optional[float] = None
    source: str = SOURCE_VCF_INFO


@dataclass(frozen=True)
class VariantRecord:
    chrom: str
    pos: int
    rsids: Tuple[str, ...]
    ref: str
    alt: Tuple[str, ...]
    qual: Optional[float] = None
    filter: Optional[str] = None
    info: Mapping[str, InfoValue] = field(default_factory=dict)
    genotype: Optional[str] = None
    genotype_quality: Optional[float] = None
    pgx_annotations: Tuple[PgxAnnotation, ...] = field(default_factory=tuple)
    raw_line: str = ""

    @property
    def primary_rsid(self) -> Optional[str]:
        return self.rsids[0] if self.rsids else None

    def genes(self) -> List[str]:
        return [a.gene for a in self.pgx_annotations]

    def annotation_for(self, gene: str) -> Optional[PgxAnnotation]:
        for ann in self.pgx_annotations:
            if ann.gene == gene:
                return ann
        return None


@dataclass
class VcfMetadata:
    fileformat: Optional[str] = None
    meta_lines: List[str] = field(default_factory=list)
    header_fields: List[str] = field(default_factory=list)
    sample_ids: List[str] = field(default_factory=list)
    total_variants: int = 0
    pgx_variants: int = 0


@dataclass
class VcfParseResult:
    variants: List[VariantRecord]
    metadata: VcfMetadata
    errors: List[str]

    @property
    def success(self) -> bool:
        return not (self.errors and not self.variants)


@dataclass(frozen=True)
class VcfValidation:
    valid: bool
    error: Optional[str] = None


def validate_vcf(content: object, max_bytes: Optional[int] = None) -> VcfValidation:
    """
    Cheap pre-check before full parsing: non-empty text, under the size
    ceiling, and starting with the ##fileformat=VCF declaration.
    """
    limit = max_bytes or get_settings().max_upload_bytes
    if not content or not isinstance(content, str):
        return VcfValidation(False, "Empty or invalid file content")

    if len(content) > limit:
        return VcfValidation(False, size_limit_message(limit))

    first_line = _LINE_SPLIT.split(content, maxsplit=1)[0]
    if not first_line.startswith(FILEFORMAT_PREFIX):
        return VcfValidation(False, "Invalid VCF format: file must begin with ##fileformat=VCFv4.x")

    return VcfValidation(True, None)


def parse_vcf(
    content: Union[str, bytes],
    *,
    knowledge_base: Optional[KnowledgeBase] = None,
) -> VcfParseResult:
    """
    Parse VCF text and keep only pharmacogenomically relevant variants.

    A variant is retained when its INFO GENE tag names a known gene, or when an
    rsID from the ID column or the INFO RS tag is in the knowledge base index.
    Malformed data lines are reported in ``errors`` and skipped; parsing
    continues with the next line.
    """
    kb = knowledge_base or get_knowledge_base()
    if isinstance(content, bytes):
        content = content.decode("utf-8", errors="replace")

    lines = _LINE_SPLIT.split(content or "")
    errors: List[str] = []
    metadata = VcfMetadata()

    first = next((ln.strip() for ln in lines if ln.strip()), "")
    if not first.startswith(FILEFORMAT_PREFIX):
        errors.append("Invalid VCF file: missing ##fileformat=VCF header line")
        return VcfParseResult(variants=[], metadata=metadata, errors=errors)

    metadata.fileformat = first[len("##fileformat="):].strip()

    known_genes = kb.known_genes
    header_seen = False
    variants: List[VariantRecord] = []

    for i, raw in enumerate(lines):
        line = raw.strip()
        if not line:
            continue

        if line.startswith("##"):
            metadata.meta_lines.append(line)
            continue

        if line.startswith("#CHROM") or line.startswith("#chrom"):
            header_seen = True
            metadata.header_fields = line[1:].split("\t")
            if "FORMAT" in metadata.header_fields:
                fmt_idx = metadata.header_fields.index("FORMAT")
                metadata.sample_ids = metadata.header_fields[fmt_idx + 1:]
            continue

        if line.startswith("#"):
            continue

        record = _parse_variant_line(line, i + 1, kb, known_genes, errors)
        if record is None:
            continue
        metadata.total_variants += 1

        if record.pgx_annotations:
            metadata.pgx_variants += 1
            variants.append(record)

    if not header_seen:
        errors.append("Invalid VCF: no header line (#CHROM ...) found")

    if errors:
        logger.warning("VCF parsed with %d error(s); %d variant(s) retained", len(errors), len(variants))
    else:
        logger.info(
            "VCF parsed: %d data lines, %d pharmacogenomic variants",
            metadata.total_variants, metadata.pgx_variants,
        )

    return VcfParseResult(variants=variants, metadata=metadata, errors=errors)


def _parse_variant_line(
    line: str,
    line_no: int,
    kb: KnowledgeBase,
    known_genes,
    errors: List[str],
) -> Optional[VariantRecord]:
    cols = line.split("\t")
    if len(cols) < MIN_DATA_COLUMNS:
        errors.append(f"Line {line_no}: insufficient fields (expected >=8, got {len(cols)})")
        return None

    chrom, pos_s, vid, ref, alt_s, qual_s, flt, info_s = cols[:8]
    rest = cols[8:]

    try:
        pos = int(pos_s)
    except ValueError:
        errors.append(f"Line {line_no}: invalid POS value '{pos_s}'")
        return None

    info = _parse_info_field(info_s)
    genotype, genotype_quality = _extract_genotype(rest)

    rsids = extract_rsids(vid)
    annotations: List[PgxAnnotation] = []

    # 1. INFO GENE tag
    gene_from_info = _pick_str(info.get("GENE") or info.get("gene"))
    star_from_info = _pick_str(info.get("STAR") or info.get("star"))
    if gene_from_info and gene_from_info.upper() in known_genes:
        annotations.append(
            PgxAnnotation(gene=gene_from_info.upper(), star_allele=star_from_info, source=SOURCE_VCF_INFO)
        )

    # 2. rsIDs from the ID column
    for rsid in rsids:
        _add_lookup_annotations(annotations, kb.lookup_rsid(rsid), SOURCE_RSID_LOOKUP)

    # 3. INFO RS tag
    rs_from_info = _pick_str(info.get("RS") or info.get("rs"))
    if rs_from_info:
        normalized = rs_from_info if rs_from_info.startswith("rs") else f"rs{rs_from_info}"
        matches = kb.lookup_rsid(normalized)
        if matches:
            _add_lookup_annotations(annotations, matches, SOURCE_INFO_RS)
            if normalized not in rsids:
                rsids.append(normalized)

    return VariantRecord(
        chrom=chrom,
        pos=pos,
        rsids=tuple(rsids),
        ref=ref,
        alt=tuple(alt_s.split(",")),
        qual=_parse_float(qual_s),
        filter=flt,
        info=info,
        genotype=genotype,
        genotype_quality=genotype_quality,
        pgx_annotations=tuple(annotations),
        raw_line=line,
    )


def _add_lookup_annotations(annotations: List[PgxAnnotation], matches, source: str) -> None:
    present = {(a.gene, a.star_allele) for a in annotations}
    for match in matches:
        if (match.gene, match.star_allele) in present:
            continue
        annotations.append(
            PgxAnnotation(
                gene=match.gene,
                star_allele=match.star_allele,
                function=match.function,
                activity_score=match.activity_score,
                source=source,
            )
        )
        present.add((match.gene, match.star_allele))


def _parse_info_field(info: str) -> Dict[str, InfoValue]:
    out: Dict[str, InfoValue] = {}
    if not info or info == ".":
        return out
    for item in info.split(";"):
        if not item:
            continue
        if "=" not in item:
            out[item] = True
            continue
        k, v = item.split("=", 1)
        out[k] = v
    return out


def _extract_genotype(rest: List[str]) -> Tuple[Optional[str], Optional[float]]:
    """Locate GT and GQ in the FORMAT column and read them from the first sample."""
    if len(rest) < 2:
        return None, None

    format_keys = rest[0].split(":")
    sample_fields = rest[1].split(":")

    genotype = None
    genotype_quality = None
    if "GT" in format_keys:
        idx = format_keys.index("GT")
        if idx < len(sample_fields) and sample_fields[idx]:
            genotype = sample_fields[idx]
    if "GQ" in format_keys:
        idx = format_keys.index("GQ")
        if idx < len(sample_fields) and sample_fields[idx]:
            genotype_quality = _parse_float(sample_fields[idx])
    return genotype, genotype_quality


def extract_rsids(id_field: str) -> List[str]:
    """rsIDs from the ID column (may be ';' or ',' separated)."""
    if not id_field or id_field == ".":
        return []
    return [s.strip() for s in _ID_SPLIT.split(id_field) if s.strip().startswith("rs")]


def _parse_float(value: str) -> Optional[float]:
    if value in (".", ""):
        return None
    try:
        return float(value)
    except ValueError:
        return None


def _pick_str(value: Optional[InfoValue]) -> Optional[str]:
    if isinstance(value, str) and value:
        return value
    return None
