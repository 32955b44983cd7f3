from random import choice, randint
from typing import Tuple

import numpy as np
import pytest
from Bio import Align

from hirschberg import (
    hirschberg_alignment,
    needleman_wunsch_alignment,
    needleman_wunsch_matrix,
    needleman_wunsch_last_row,
    needleman_wunsch_score,
    find_split_point,
    alignment_score,
    substitution_score,
    format_score_matrix,
    colorize_alignment,
)


def random_sequence(alphabet: str, min_length: int, max_length: int) -> str:
    return "".join(choice(alphabet) for _ in range(randint(min_length, max_length)))


def assert_valid_alignment(str1: str, str2: str, align1: str, align2: str):
    colored1, colored2 = colorize_alignment(align1, align2)
    assert len(align1) == len(align2), f"Tracks differ in length:\n    {colored1}\n    {colored2}"
    assert align1.replace("-", "") == str1, f"First track doesn't spell {str1}:\n    {colored1}"
    assert align2.replace("-", "") == str2, f"Second track doesn't spell {str2}:\n    {colored2}"
    assert not any(a == "-" and b == "-" for a, b in zip(align1, align2)), "Found a column of two gaps"


"""
Test the symmetry of global alignment scores.

Verifies that the alignment score of A<->B is the same as B<->A for random DNA sequences.
"""


@pytest.mark.repeat(30)
@pytest.mark.parametrize("min_length", [0, 5])
@pytest.mark.parametrize("max_length", [15, 25])
def test_symmetry(min_length: int, max_length: int):
    alphabet = "ACGT"
    str1 = random_sequence(alphabet, min_length, max_length)
    str2 = random_sequence(alphabet, min_length, max_length)

    _, _, score1 = hirschberg_alignment(str1, str2)
    _, _, score2 = hirschberg_alignment(str2, str1)

    assert (
        score1 == score2
    ), f"Alignment score symmetry failed for {str1} <-> {str2}. Score1: {score1}, Score2: {score2}"


"""
Test Hirschberg and Needleman-Wunsch alignment consistency.

Ensures that the linear-space and the quadratic-space algorithms produce equally scored,
valid alignments, and that the reported scores match the ones re-derived from the tracks.
"""


@pytest.mark.repeat(10)
@pytest.mark.parametrize("min_length", [0, 3, 7])
@pytest.mark.parametrize("max_length", [7, 15, 40])
@pytest.mark.parametrize("scores", [(1, -1, -1), (2, -1, -2), (0, -1, -1), (5, -3, -4)])
def test_against_needleman_wunsch(min_length: int, max_length: int, scores: Tuple[int, int, int]):

    alphabet = "ACGT"
    match, mismatch, gap = scores
    str1 = random_sequence(alphabet, min_length, max_length)
    str2 = random_sequence(alphabet, min_length, max_length)

    hb1, hb2, hb_score = hirschberg_alignment(str1, str2, match=match, mismatch=mismatch, gap=gap)
    nw1, nw2, nw_score = needleman_wunsch_alignment(str1, str2, match=match, mismatch=mismatch, gap=gap)
    only_score = needleman_wunsch_score(str1, str2, match=match, mismatch=mismatch, gap=gap)

    assert_valid_alignment(str1, str2, hb1, hb2)
    assert_valid_alignment(str1, str2, nw1, nw2)
    assert hb_score == alignment_score(hb1, hb2, match=match, mismatch=mismatch, gap=gap)
    assert nw_score == alignment_score(nw1, nw2, match=match, mismatch=mismatch, gap=gap)

    colored_hb1, colored_hb2 = colorize_alignment(hb1, hb2)
    colored_nw1, colored_nw2 = colorize_alignment(nw1, nw2)
    assert (
        hb_score == nw_score == only_score
    ), f"""
    Hirschberg and Needleman-Wunsch should return the same score.
    Hirschberg scored {hb_score}:
        {colored_hb1}
        {colored_hb2}
    Needleman-Wunsch scored {nw_score}:
        {colored_nw1}
        {colored_nw2}
    """


"""
Compare global alignment scores with BioPython.

With equal gap opening and extension scores, BioPython's PairwiseAligner runs the
plain Needleman-Wunsch algorithm, so the optimal scores must be identical.
"""


@pytest.mark.parametrize(
    "pair",
    [
        ("AGTACGCA", "TATGC"),
        ("GATTACA", "GCATGCU"),
        ("GGTGTGA", "TCGCGT"),
        ("AAAGGG", "TTAAAAGGGGTT"),
        ("CGCCTTAC", "AAATTTGC"),
        ("AGAT", "CTCT"),
    ],
)
@pytest.mark.parametrize("scores", [(1, -1, -1), (2, -1, -2), (10, -30, -25)])
def test_against_biopython_examples(pair: Tuple[str, str], scores: Tuple[int, int, int]):
    a, b = pair
    match, mismatch, gap = scores

    _, _, hirschberg_score = hirschberg_alignment(a, b, match=match, mismatch=mismatch, gap=gap)

    aligner = Align.PairwiseAligner(mode="global")
    aligner.match_score = match
    aligner.mismatch_score = mismatch
    aligner.open_gap_score = gap
    aligner.extend_gap_score = gap
    biopython_score = int(aligner.score(a, b))

    assert hirschberg_score == biopython_score, f"Hirschberg and BioPython disagree on {a} and {b}"


@pytest.mark.repeat(10)
@pytest.mark.parametrize("first_length", [20, 100])
@pytest.mark.parametrize("second_length", [20, 100])
def test_against_biopython_fuzzy(first_length: int, second_length: int):

    # Make sure we generate different strings each time
    alphabet = "ARNDCQEGHILKMFPSTWYV"
    a = "".join(choice(alphabet) for _ in range(first_length))
    b = "".join(choice(alphabet) for _ in range(second_length))

    aligner = Align.PairwiseAligner(mode="global")
    aligner.match_score = 1
    aligner.mismatch_score = -1
    aligner.open_gap_score = -1
    aligner.extend_gap_score = -1
    biopython_score = int(aligner.score(a, b))

    hb1, hb2, hirschberg_score = hirschberg_alignment(a, b)
    assert_valid_alignment(a, b, hb1, hb2)
    assert hirschberg_score == biopython_score, f"Hirschberg and BioPython disagree on {a} and {b}"


@pytest.mark.repeat(3)
def test_long():
    alphabet = "AC"
    a = "".join(choice(alphabet) for _ in range(1200))
    b = "".join(choice(alphabet) for _ in range(1300))

    hb1, hb2, hirschberg_score = hirschberg_alignment(a, b)
    assert_valid_alignment(a, b, hb1, hb2)
    assert hirschberg_score == needleman_wunsch_score(a, b)
    assert hirschberg_score == alignment_score(hb1, hb2)


@pytest.mark.parametrize(
    "str1, str2, expected_score",
    [
        ("", "", 0),
        ("A", "A", 1),
        ("A", "G", -1),
        ("ACGT", "ACGT", 4),
        ("AGTACGCA", "TATGC", 0),
        ("", "ACGT", -4),
        ("ACG", "", -3),
    ],
)
@pytest.mark.parametrize("aligner", [hirschberg_alignment, needleman_wunsch_alignment])
def test_known_scores(str1: str, str2: str, expected_score: int, aligner):
    align1, align2, score = aligner(str1, str2)
    assert_valid_alignment(str1, str2, align1, align2)
    assert score == expected_score
    assert alignment_score(align1, align2) == expected_score


def test_degenerate_inputs():
    assert hirschberg_alignment("", "") == ("", "", 0)
    assert hirschberg_alignment("", "TATGC") == ("-----", "TATGC", -5)
    assert hirschberg_alignment("TATGC", "") == ("TATGC", "-----", -5)
    assert hirschberg_alignment("", "TATGC", gap=-3) == ("-----", "TATGC", -15)
    assert hirschberg_alignment("A", "G") == ("A", "G", -1)


@pytest.mark.repeat(10)
@pytest.mark.parametrize("length", [1, 2, 17, 64])
def test_self_alignment(length: int):
    seq = "".join(choice("ACGT") for _ in range(length))
    assert hirschberg_alignment(seq, seq) == (seq, seq, length)


@pytest.mark.repeat(10)
def test_determinism():
    a = random_sequence("ACGT", 10, 50)
    b = random_sequence("ACGT", 10, 50)
    assert hirschberg_alignment(a, b) == hirschberg_alignment(a, b)
    assert needleman_wunsch_alignment(a, b) == needleman_wunsch_alignment(a, b)


def test_opaque_symbols():
    # Case and script are not folded, symbols are only compared for equality
    _, _, score = hirschberg_alignment("aBγ", "Abγ")
    assert score == -1
    assert hirschberg_alignment("αβγδ", "αβγδ") == ("αβγδ", "αβγδ", 4)


"""
Test the tie-breaking rules.

The traceback prefers the diagonal, then the deletion, then the insertion, and the
split point is the first column reaching the maximal combined score. Both rules
are total orders, so the outputs on tied inputs are fixed.
"""


def test_traceback_priority():
    assert needleman_wunsch_alignment("AC", "CA") == ("-AC", "CA-", -1)
    assert needleman_wunsch_alignment("AB", "A") == ("AB", "A-", 0)


def test_hirschberg_tie_breaking():
    assert hirschberg_alignment("AC", "CA") == ("AC-", "-CA", -1)


def test_split_point():
    assert find_split_point(np.array([1, 3, 3]), np.array([0, 0, 0])) == 1
    assert find_split_point(np.array([0, 0, 0]), np.array([5, 1, 2])) == 2
    assert find_split_point(np.array([-1, -1, 0]), np.array([-1, -1, 0])) == 0
    assert find_split_point(np.array([7]), np.array([-3])) == 0


def test_split_point_length_mismatch():
    with pytest.raises(ValueError):
        find_split_point(np.array([0, 1, 2]), np.array([0, 1]))


@pytest.mark.repeat(10)
@pytest.mark.parametrize("scores", [(1, -1, -1), (3, -2, -1)])
def test_last_row(scores: Tuple[int, int, int]):
    match, mismatch, gap = scores
    a = random_sequence("ACGT", 0, 20)
    b = random_sequence("ACGT", 0, 20)

    matrix = needleman_wunsch_matrix(a, b, match=match, mismatch=mismatch, gap=gap)
    profile = needleman_wunsch_last_row(a, b, match=match, mismatch=mismatch, gap=gap)
    assert matrix.shape == (len(a) + 1, len(b) + 1)
    assert np.array_equal(matrix[-1], profile)
    assert np.array_equal(matrix[:, 0], np.arange(len(a) + 1) * gap)
    assert np.array_equal(matrix[0], np.arange(len(b) + 1) * gap)


def test_format_score_matrix():
    assert format_score_matrix(needleman_wunsch_matrix("A", "A")) == " 0 -1\n-1  1"
    assert format_score_matrix(needleman_wunsch_matrix("", "")) == "0"

    lines = format_score_matrix(needleman_wunsch_matrix("AGTACGCA", "TATGC")).splitlines()
    assert len(lines) == 9
    assert len({len(line) for line in lines}) == 1
    assert lines[0].split() == ["0", "-1", "-2", "-3", "-4", "-5"]


def test_scoring_policy():
    assert substitution_score("A", "A") == 1
    assert substitution_score("A", "C") == -1
    assert substitution_score("A", "A", match=5, mismatch=-4) == 5
    assert alignment_score("AC-T", "A-GA") == 1 - 1 - 1 - 1
    assert alignment_score("AC-T", "A-GA", match=2, mismatch=-3, gap=-1) == 2 - 1 - 1 - 3

    with pytest.raises(ValueError):
        alignment_score("ACGT", "ACG")


@pytest.mark.parametrize("arguments", [{"match": 1.5}, {"gap": "-1"}, {"mismatch": True}])
def test_invalid_scores(arguments):
    with pytest.raises(ValueError):
        hirschberg_alignment("ACGT", "AGT", **arguments)
    with pytest.raises(ValueError):
        needleman_wunsch_alignment("ACGT", "AGT", **arguments)
