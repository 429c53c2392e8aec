"""Assembly of expression matrices from per-sample quantification files.

Handles the GDC layout: one quantification file per aliquot plus a sample
sheet mapping file names to sample barcodes. Matrices are returned as
samples x features.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
from gseapy.parser import read_gmt

from pathdisrupt.core.samples import classify_samples
from pathdisrupt.core.types import ClassRule, PathwayGeneSet

logger = logging.getLogger(__name__)

# Summary rows emitted by STAR / htseq alongside gene counts.
_SUMMARY_PREFIXES = ("N_", "__")


@dataclass(frozen=True)
class QuantSpec:
    """Where to find identifiers and values inside one quantification file."""

    pattern: str
    id_col: str
    value_col: str
    comment: str | None = "#"
    # Raw counts are normalised (TPM for genes, RPM for miRNAs) on assembly.
    counts: bool = False


STAR_COUNTS = QuantSpec(
    pattern="*.rna_seq.augmented_star_gene_counts.tsv",
    id_col="gene_name",
    value_col="unstranded",
    counts=True,
)
STAR_TPM = QuantSpec(
    pattern="*.rna_seq.augmented_star_gene_counts.tsv",
    id_col="gene_name",
    value_col="tpm_unstranded",
)
MIRNA_COUNTS = QuantSpec(
    pattern="*.mirnas.quantification.txt",
    id_col="miRNA_ID",
    value_col="read_count",
    comment=None,
    counts=True,
)
MIRNA_RPM = QuantSpec(
    pattern="*.mirnas.quantification.txt",
    id_col="miRNA_ID",
    value_col="reads_per_million_miRNA_mapped",
    comment=None,
)

PRESETS: dict[str, QuantSpec] = {
    "star_counts": STAR_COUNTS,
    "star_tpm": STAR_TPM,
    "mirna_counts": MIRNA_COUNTS,
    "mirna_rpm": MIRNA_RPM,
}


def read_sample_sheet(path: str | Path) -> pd.Series:
    """Map file name -> sample barcode from a GDC sample sheet TSV."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Sample sheet not found: {p}")
    sheet = pd.read_csv(p, sep="\t", dtype=str)
    missing = [c for c in ("File Name", "Sample ID") if c not in sheet.columns]
    if missing:
        raise KeyError(f"Sample sheet '{p}' lacks required column(s): {missing}")
    # Pooled files list several comma-separated samples; keep the first.
    sample_ids = sheet["Sample ID"].fillna("").str.split(",").str[0].str.strip()
    mapping = pd.Series(
        sample_ids.to_numpy(), index=sheet["File Name"].to_numpy(), name="sample_id"
    )
    return mapping[mapping != ""]


def read_quantification_file(path: str | Path, spec: QuantSpec) -> pd.Series:
    """Read one per-sample quantification file into a feature-indexed Series."""
    p = Path(path)
    frame = pd.read_csv(p, sep="\t", comment=spec.comment)
    for col in (spec.id_col, spec.value_col):
        if col not in frame.columns:
            raise KeyError(f"Column '{col}' not found in {p.name}.")
    # STAR summary rows carry their label in gene_id and leave gene_name empty.
    lead = frame.iloc[:, 0].astype(str)
    ids = frame[spec.id_col].astype(str)
    keep = (
        frame[spec.id_col].notna()
        & ~ids.str.startswith(_SUMMARY_PREFIXES)
        & ~lead.str.startswith(_SUMMARY_PREFIXES)
    )
    values = pd.to_numeric(frame.loc[keep, spec.value_col], errors="coerce")
    series = pd.Series(values.to_numpy(dtype=float), index=ids[keep].to_numpy())
    return series.groupby(level=0, sort=False).sum()


def read_quantification_dir(
    directory: str | Path,
    sample_sheet: pd.Series,
    spec: QuantSpec,
) -> pd.DataFrame:
    """Assemble samples x features from every file matching `spec.pattern`.

    Files absent from the sample sheet are skipped; repeated aliquots of one
    sample keep the first file in sorted path order.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Quantification directory not found: {root}")
    files = sorted(root.rglob(spec.pattern))
    if not files:
        raise FileNotFoundError(f"No files matching '{spec.pattern}' under {root}")

    columns: dict[str, pd.Series] = {}
    n_unmapped = 0
    n_repeat = 0
    for path in files:
        sample_id = sample_sheet.get(path.name)
        if sample_id is None:
            n_unmapped += 1
            continue
        if sample_id in columns:
            n_repeat += 1
            continue
        columns[str(sample_id)] = read_quantification_file(path, spec)

    if n_unmapped:
        logger.warning("%d quantification files missing from the sample sheet.", n_unmapped)
    if n_repeat:
        logger.info("Skipped %d repeated aliquots.", n_repeat)
    if not columns:
        raise FileNotFoundError(f"No quantification files under {root} matched the sample sheet.")

    matrix = pd.DataFrame(columns).T
    matrix.index.name = "sample_id"
    logger.info("Assembled %d samples x %d features from %s", *matrix.shape, root)
    return matrix


def read_gene_lengths(
    path: str | Path, id_col: str = "gene_name", length_col: str = "length"
) -> pd.Series:
    """Gene lengths (bp) keyed by gene identifier from a CSV/TSV table."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Gene length table not found: {p}")
    sep = "\t" if p.suffix.lower() in {".tsv", ".txt"} else ","
    table = pd.read_csv(p, sep=sep)
    for col in (id_col, length_col):
        if col not in table.columns:
            raise KeyError(f"Column '{col}' not found in {p.name}.")
    lengths = pd.to_numeric(table[length_col], errors="coerce")
    series = pd.Series(
        lengths.to_numpy(dtype=float), index=table[id_col].astype(str).to_numpy()
    )
    # PAR_Y copies share a symbol; keep the first length.
    return series[~series.index.duplicated(keep="first")].dropna()


def counts_to_tpm(counts: pd.DataFrame, lengths: pd.Series) -> pd.DataFrame:
    """Transcripts per million from samples x genes counts and gene lengths (bp)."""
    shared = [g for g in counts.columns if g in lengths.index]
    dropped = counts.shape[1] - len(shared)
    if dropped:
        logger.info("counts_to_tpm: %d genes without a length were dropped.", dropped)
    if not shared:
        raise ValueError("No genes in common between counts and lengths.")
    len_kb = lengths.loc[shared].astype(float) / 1e3
    if np.any(len_kb.to_numpy() <= 0):
        raise ValueError("Gene lengths must be positive.")
    rate = counts.loc[:, shared].astype(float).div(len_kb, axis=1)
    total = rate.sum(axis=1)
    return rate.div(total.where(total > 0), axis=0) * 1e6


def counts_to_rpm(counts: pd.DataFrame) -> pd.DataFrame:
    """Reads per million mapped, per sample."""
    c = counts.astype(float)
    total = c.sum(axis=1)
    return c.div(total.where(total > 0), axis=0) * 1e6


def filter_by_class(matrix: pd.DataFrame, rule: ClassRule | None = None) -> pd.DataFrame:
    """Keep tumor and normal samples only."""
    labels = classify_samples(matrix.index, rule)
    keep = labels.notna().to_numpy()
    logger.info(
        "Class filter kept %d of %d samples (tumor=%d, normal=%d).",
        int(keep.sum()),
        keep.size,
        int((labels == "tumor").sum()),
        int((labels == "normal").sum()),
    )
    return matrix.loc[keep]


def gene_sets_from_mapping(mapping: Mapping[str, list[str]]) -> tuple[PathwayGeneSet, ...]:
    return tuple(
        PathwayGeneSet(name=str(name), genes=tuple(str(g) for g in genes))
        for name, genes in mapping.items()
    )


def read_gene_sets(path: str | Path, min_size: int = 1) -> tuple[PathwayGeneSet, ...]:
    """Load pathway gene sets from a GMT file, keeping file order."""
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"Gene set file not found: {p}")
    sets = gene_sets_from_mapping(read_gmt(str(p)))
    kept = tuple(gs for gs in sets if len(gs.genes) >= int(min_size))
    if len(kept) < len(sets):
        logger.info(
            "Dropped %d gene sets with fewer than %d genes.", len(sets) - len(kept), min_size
        )
    return kept
