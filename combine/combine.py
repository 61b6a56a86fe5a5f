#!/usr/bin/env python3
"""
Combine per-chromosome ChromoPainter / pbwt / SparsePainter matrices.

This script orchestrates the full run:
1. Reads the header of the first chromosome to fix the output columns
2. Fixes the rows (the columns again, or a scan of the first file for SparsePainter)
3. Sums every chromosome's matrix in parallel
4. Writes the total as a gzip text matrix

Input: gzip matrices named <pre_chr><chromosome><post_chr>
Output: One gzip matrix with the same header and the summed values
"""

import argparse
import logging
import sys

from chunklengths.combine.config import CombineConfig, ProgramType
from chunklengths.core.columns import ColumnIndex
from chunklengths.core.errors import CombineError
from chunklengths.core.output import MergedMatrix, write_matrix
from chunklengths.core.reduce import ParallelReducer
from chunklengths.core.rows import build_row_catalog

logger = logging.getLogger(__name__)


def combine_chunklengths(config: CombineConfig, write_output: bool = True) -> MergedMatrix:
    """
    Sum the matrices of every chromosome in ``config`` and write the result.

    Args:
        config: Run configuration
        write_output: Whether to write ``config.output_path`` (default: True)

    Returns:
        MergedMatrix holding the labels and the summed values

    Raises:
        ConfigError: Bad configuration or identity column missing from the header
        MatrixIOError: An input cannot be read or the output cannot be written
        AllocationError: The matrix does not fit in memory
    """
    config.validate()
    logger.info(
        "pre_chr=%s  post_chr=%s  chrs=%s  output=%s  type=%s",
        config.pre_chr, config.post_chr, ",".join(config.chromosome_ids),
        config.output_path, config.program_type.value,
    )

    reference = config.reference_path
    columns = ColumnIndex.from_file(reference, config.identity_label)
    rows = build_row_catalog(columns, reference, config.ragged, chunk_size=config.chunk_size)
    logger.info("matrix size will be %d rows x %d cols", rows.nrows, columns.ncols)

    reducer = ParallelReducer(
        (rows.nrows, columns.ncols),
        max_workers=config.max_workers,
        chunk_size=config.chunk_size,
    )
    total, reports = reducer.run(config.input_paths(), columns.remove_index)
    logger.info("All chromosomes processed")

    mismatched = sum(1 for r in reports if r.size_mismatch)
    failures = sum(r.parse_failures for r in reports)
    if mismatched or failures:
        logger.warning(
            "%d file(s) with unexpected row counts, %d non-numeric token(s) counted as 0",
            mismatched, failures,
        )

    merged = MergedMatrix(
        identity_label=config.identity_label,
        column_names=columns.names,
        row_labels=rows.labels,
        values=total,
    )
    if write_output:
        write_matrix(config.output_path, merged.identity_label, merged.column_names,
                     merged.row_labels, merged.values)
    logger.info("Done  (%dx%d)", rows.nrows, columns.ncols)
    return merged


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Sum per-chromosome ChromoPainter, pbwt or SparsePainter matrices into one gzip matrix.'
    )
    parser.add_argument('-p', '--pre_chr', required=True,
                        help='Input path prefix before the chromosome id')
    parser.add_argument('-a', '--post_chr', required=True,
                        help='Input path suffix after the chromosome id')
    parser.add_argument('-c', '--chrs', required=True,
                        help='Comma-separated chromosome ids, e.g. 1,2,3')
    parser.add_argument('-o', '--output', required=True,
                        help='Output gzip file')
    parser.add_argument('-t', '--type', required=True,
                        choices=[p.value for p in ProgramType],
                        help='Program that produced the matrices')
    parser.add_argument('-j', '--workers', type=int, default=None,
                        help='Maximum number of files processed in parallel (default: CPU count)')
    parser.add_argument('--chunk-size', type=int, default=None,
                        help='Decompressed bytes read at a time (default: settings.chunk_size)')
    parser.add_argument('-q', '--quiet', action='store_true',
                        help='Only log warnings and errors')
    return parser


def main(argv=None):
    """Main function with command-line interface."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format='%(asctime)s  %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stdout,
    )
    logger.info("starting combine_chunklengths")

    try:
        config = CombineConfig.from_strings(
            args.pre_chr, args.post_chr, args.chrs, args.output, args.type,
            max_workers=args.workers, chunk_size=args.chunk_size,
        )
        combine_chunklengths(config)
        return 0
    except (CombineError, OSError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
