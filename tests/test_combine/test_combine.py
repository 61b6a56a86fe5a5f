"""
End-to-end tests for combine_chunklengths and the command-line interface.
"""

from __future__ import annotations

import gzip
from pathlib import Path

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from chunklengths.combine.combine import combine_chunklengths, main
from chunklengths.combine.config import CombineConfig
from chunklengths.core.errors import ConfigError, MatrixIOError
from chunklengths.core.output import read_matrix


def _config(tmp_path: Path, chrs: str, program: str = "pbwt", **kwargs) -> CombineConfig:
    return CombineConfig.from_strings(
        str(tmp_path / "chr"), ".out.gz", chrs, str(tmp_path / "combined.gz"), program, **kwargs
    )


class TestCombineChunklengths:
    """Test full runs."""

    def test_two_identical_files_double(self, make_matrix, tmp_path):
        """Test two copies of a square matrix sum to double, with six-decimal output."""
        text = "RECIPIENT A B C\nA 1.0 2.0 3.0\nB 4.0 5.0 6.0\nC 7.0 8.0 9.0\n"
        make_matrix("chr1.out.gz", text)
        make_matrix("chr2.out.gz", text)

        merged = combine_chunklengths(_config(tmp_path, "1,2"))

        with gzip.open(tmp_path / "combined.gz", "rt") as f:
            assert f.read() == (
                "RECIPIENT A B C\n"
                "A 2.000000 4.000000 6.000000\n"
                "B 8.000000 10.000000 12.000000\n"
                "C 14.000000 16.000000 18.000000\n"
            )
        assert merged.column_names == ("A", "B", "C")
        assert merged.row_labels == ("A", "B", "C")

    def test_sum_of_three_chromosomes(self, chromosome_files, tmp_path, square_values):
        """Test the sum over every listed chromosome."""
        merged = combine_chunklengths(_config(tmp_path, "1,2,3", max_workers=3))
        assert_allclose(merged.values, 6 * square_values, rtol=1e-5)
        assert_allclose(read_matrix(tmp_path / "combined.gz").values, 6 * square_values, rtol=1e-5)

    def test_duplicate_chromosome_is_exactly_double(self, chromosome_files, tmp_path):
        """Test the same path listed twice doubles every cell exactly."""
        single = combine_chunklengths(_config(tmp_path, "2"), write_output=False)
        double = combine_chunklengths(_config(tmp_path, "2,2", max_workers=2), write_output=False)
        assert_array_equal(double.values, 2 * single.values)

    def test_tiny_chunk_size(self, chromosome_files, tmp_path, square_values):
        """Test a 16-byte chunk size gives the same result as the default."""
        merged = combine_chunklengths(_config(tmp_path, "1,2,3", chunk_size=16))
        assert_allclose(merged.values, 6 * square_values, rtol=1e-5)

    @pytest.mark.parametrize("program, label", [("pbwt", "RECIPIENT"), ("chromopainter", "Recipient")])
    def test_column_integrity_square(self, make_matrix, tmp_path, program, label):
        """Test output columns are the header minus the identity column."""
        make_matrix("chr1.out.gz", f"x {label} y\n1 x 2\n3 y 4\n")
        merged = combine_chunklengths(_config(tmp_path, "1", program))
        assert merged.identity_label == label
        assert merged.column_names == ("x", "y")
        assert merged.row_labels == ("x", "y")
        assert_array_equal(merged.values, [[1, 2], [3, 4]])
        with gzip.open(tmp_path / "combined.gz", "rt") as f:
            assert f.readline() == f"{label} x y\n"

    def test_sparsepainter_ragged_rows(self, make_matrix, tmp_path):
        """Test SparsePainter rows come from the reference file, not the header."""
        make_matrix("chr1.out.gz", "indnames popA popB\nind1 0.5 1.5\nind2 2.5 3.5\nind3 4.5 5.5\n")
        make_matrix("chr2.out.gz", "indnames popA popB\nind1 1 1\nind2 1 1\nind3 1 1\n")
        merged = combine_chunklengths(_config(tmp_path, "1,2", "SparsePainter"))
        assert merged.row_labels == ("ind1", "ind2", "ind3")
        assert merged.column_names == ("popA", "popB")
        assert_allclose(merged.values, [[1.5, 2.5], [3.5, 4.5], [5.5, 6.5]])

        written = read_matrix(tmp_path / "combined.gz")
        assert written.identity_label == "indnames"
        assert written.row_labels == ("ind1", "ind2", "ind3")

    def test_shorter_chromosome_is_not_fatal(self, make_matrix, tmp_path):
        """Test a file with fewer rows only adds to the rows it has."""
        make_matrix("chr1.out.gz", "indnames p\nr1 1\nr2 2\nr3 3\n")
        make_matrix("chr2.out.gz", "indnames p\nr1 10\n")
        merged = combine_chunklengths(_config(tmp_path, "1,2", "SparsePainter"))
        assert_array_equal(merged.values, [[11], [2], [3]])

    def test_malformed_token_is_not_fatal(self, make_matrix, tmp_path):
        """Test a bad token contributes zero and the run completes."""
        make_matrix("chr1.out.gz", "RECIPIENT A B\nA 1 NA\nB 2 3\n")
        make_matrix("chr2.out.gz", "RECIPIENT A B\nA 1 1\nB 1 1\n")
        merged = combine_chunklengths(_config(tmp_path, "1,2"))
        assert_array_equal(merged.values, [[2, 1], [3, 4]])

    def test_missing_identity_column(self, make_matrix, tmp_path):
        """Test a header without the program's identity column stops the run."""
        make_matrix("chr1.out.gz", "RECIPIENT A\nA 1\n")
        with pytest.raises(ConfigError, match="Recipient"):
            combine_chunklengths(_config(tmp_path, "1", "chromopainter"))
        assert not (tmp_path / "combined.gz").exists()

    def test_missing_chromosome_file(self, chromosome_files, tmp_path):
        """Test a missing chromosome aborts without writing output."""
        with pytest.raises(MatrixIOError):
            combine_chunklengths(_config(tmp_path, "1,2,9"))
        assert not (tmp_path / "combined.gz").exists()

    def test_missing_reference_file(self, tmp_path):
        """Test a missing first chromosome fails before any accumulation."""
        with pytest.raises(MatrixIOError):
            combine_chunklengths(_config(tmp_path, "1"))

    def test_empty_chromosome_list(self, tmp_path):
        """Test an empty chromosome list is rejected."""
        with pytest.raises(ConfigError):
            combine_chunklengths(_config(tmp_path, ""))

    def test_write_output_false(self, chromosome_files, tmp_path):
        """Test the output file is optional."""
        merged = combine_chunklengths(_config(tmp_path, "1"), write_output=False)
        assert merged.values.dtype == np.float32
        assert not (tmp_path / "combined.gz").exists()


class TestMain:
    """Test the command-line entry point."""

    def _argv(self, tmp_path, chrs="1,2", program="pbwt"):
        return [
            "-p", str(tmp_path / "chr"), "-a", ".out.gz", "-c", chrs,
            "-o", str(tmp_path / "combined.gz"), "-t", program,
        ]

    def test_success(self, chromosome_files, tmp_path):
        """Test a successful run returns 0 and writes the output."""
        assert main(self._argv(tmp_path) + ["-j", "2", "-q"]) == 0
        merged = read_matrix(tmp_path / "combined.gz")
        assert merged.column_names == ("A", "B", "C")
        assert merged.values[2, 2] == pytest.approx(27.0)

    def test_long_options(self, chromosome_files, tmp_path):
        """Test the long option spellings."""
        argv = [
            "--pre_chr", str(tmp_path / "chr"), "--post_chr", ".out.gz", "--chrs", "3",
            "--output", str(tmp_path / "combined.gz"), "--type", "pbwt", "--chunk-size", "16",
        ]
        assert main(argv) == 0

    def test_fatal_error_returns_1(self, chromosome_files, tmp_path, capsys):
        """Test a fatal error prints one diagnostic line and returns 1."""
        assert main(self._argv(tmp_path, program="chromopainter")) == 1
        err = capsys.readouterr().err
        assert err.startswith("ERROR: ")
        assert "Recipient" in err
        assert len(err.strip().splitlines()) == 1

    def test_missing_file_returns_1(self, chromosome_files, tmp_path, capsys):
        """Test a missing chromosome file is reported by name."""
        assert main(self._argv(tmp_path, chrs="1,7")) == 1
        assert "chr7.out.gz" in capsys.readouterr().err

    def test_empty_chromosomes_returns_1(self, tmp_path):
        """Test an empty chromosome list is a fatal configuration error."""
        assert main(self._argv(tmp_path, chrs=",")) == 1

    def test_bad_type_is_usage_error(self, tmp_path):
        """Test argparse rejects unknown program types."""
        with pytest.raises(SystemExit) as excinfo:
            main(self._argv(tmp_path, program="plink"))
        assert excinfo.value.code == 2
