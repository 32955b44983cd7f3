import logging
from typing import Tuple, Optional, Callable, List

import numpy as np
import numba as nb
from colorama import Fore, Style
from colorama import init as _colorama_init


_colorama_init(autoreset=True)

logger = logging.getLogger(__name__)

# Constants for operation codes
MATCH, INSERT, DELETE, SUBSTITUTE = 0, 1, 2, 3

# Placeholder inserted into one track opposite an inserted or deleted symbol
GAP = "-"

# By default, we use the classic unit scores of the Hirschberg paper
default_match: int = 1
default_mismatch: int = -1
default_gap: int = -1


def _reconstruct_alignment(
    changes: np.ndarray,
    seq1: np.ndarray,
    seq2: np.ndarray,
    code_to_char: Callable,
) -> Tuple[str, str]:

    align1: List[str] = []
    align2: List[str] = []
    i, j = len(seq1), len(seq2)

    # Backtrack to recover the alignment, all the way to the origin
    while i > 0 or j > 0:
        if changes[i, j] == DELETE:
            align1.append(code_to_char(seq1[i - 1]))
            align2.append(GAP)
            i -= 1
        elif changes[i, j] == INSERT:
            align1.append(GAP)
            align2.append(code_to_char(seq2[j - 1]))
            j -= 1
        else:  # MATCH or SUBSTITUTE
            align1.append(code_to_char(seq1[i - 1]))
            align2.append(code_to_char(seq2[j - 1]))
            i -= 1
            j -= 1

    return "".join(reversed(align1)), "".join(reversed(align2))


def _translate_sequence(seq: str) -> np.ndarray:
    # Symbols are opaque, so code points are enough to compare them for equality
    return np.array([ord(char) for char in seq], dtype=np.uint32)


def _decode_sequence(seq: np.ndarray) -> str:
    return "".join(chr(code) for code in seq)


def _validate_scoring_arguments(
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> Tuple[int, int, int]:
    """Internal method that resolves the defaults of the linear scoring scheme."""
    if match is None:
        match = default_match
    if mismatch is None:
        mismatch = default_mismatch
    if gap is None:
        gap = default_gap

    for name, value in (("match", match), ("mismatch", mismatch), ("gap", gap)):
        if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
            raise ValueError(f"The {name} score must be an integer, got {value!r}.")

    return int(match), int(mismatch), int(gap)


def substitution_score(a, b, match: Optional[int] = None, mismatch: Optional[int] = None) -> int:
    """Scores a pair of aligned symbols: `match` if they are equal, `mismatch` otherwise."""
    match, mismatch, _ = _validate_scoring_arguments(match=match, mismatch=mismatch)
    return match if a == b else mismatch


def alignment_score(
    align1: str,
    align2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> int:
    """
    Re-derives the score of an existing alignment by summing the contribution
    of every column: `gap` for columns holding a gap marker, and the
    substitution score for the rest.

    Parameters:
    align1 (str): The first aligned track.
    align2 (str): The second aligned track.
    match (Optional[int]): The score for aligning equal symbols.
    mismatch (Optional[int]): The score for aligning different symbols.
    gap (Optional[int]): The penalty for each gap marker.

    Returns:
    int: The alignment score.
    """
    match, mismatch, gap = _validate_scoring_arguments(match=match, mismatch=mismatch, gap=gap)
    if len(align1) != len(align2):
        raise ValueError(f"Aligned tracks must have equal lengths, got {len(align1)} and {len(align2)}.")

    score = 0
    for a, b in zip(align1, align2):
        if a == GAP or b == GAP:
            score += gap
        else:
            score += match if a == b else mismatch
    return score


@nb.jit(nopython=True)
def _needleman_wunsch_kernel(
    seq1: np.ndarray,
    seq2: np.ndarray,
    match: int,
    mismatch: int,
    gap: int,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Aligns two sequences using the Needleman-Wunsch global alignment algorithm
    with a linear gap penalty.

    The kernel has quadratic complexity in space and time, as it stores the
    entire scoring matrix and the operations for each cell, to allow the
    reconstruction of the alignment. Should be called through
    `needleman_wunsch_alignment`, or directly on small subproblems of `hirschberg_alignment`.

    Parameters:
    seq1 (np.ndarray): The first sequence to be aligned.
    seq2 (np.ndarray): The second sequence to be aligned.
    match (int): The score for aligning equal symbols.
    mismatch (int): The score for aligning different symbols.
    gap (int): The penalty for each inserted or deleted symbol.

    Returns:
    Tuple[np.ndarray, np.ndarray]: The matrices for alignment scoring:
        - scores: The primary scoring matrix.
        - changes: The matrix of enums, with cells equal to MATCH, INSERT, DELETE, or SUBSTITUTE.

    Notes:
    The basis and recurrence relations for the matrix are as follows:
    Basis:
    - scores[i, 0] = i * gap
    - scores[0, j] = j * gap

    Recurrence:
    - replace = scores[i - 1, j - 1] + (match if seq1[i - 1] == seq2[j - 1] else mismatch)
    - scores[i, j] = max(replace, scores[i - 1, j] + gap, scores[i, j - 1] + gap)

    Ties are resolved in favor of the diagonal, then the deletion, then the insertion.
    """
    seq1_len = len(seq1)
    seq2_len = len(seq2)

    # Let's use `np.empty` instead of `np.zeros` to avoid the initialization step.
    scores = np.empty((seq1_len + 1, seq2_len + 1), dtype=np.int64)
    changes = np.empty((seq1_len + 1, seq2_len + 1), dtype=np.uint8)

    # Initialize the scoring matrix with cumulative gap costs
    scores[0, 0] = 0
    for i in range(1, seq1_len + 1):
        scores[i, 0] = i * gap
        changes[i, 0] = DELETE
    for j in range(1, seq2_len + 1):
        scores[0, j] = j * gap
        changes[0, j] = INSERT

    # Fill the scoring matrix and track operations
    for i in range(1, seq1_len + 1):
        for j in range(1, seq2_len + 1):

            equal = seq1[i - 1] == seq2[j - 1]
            substitution = match if equal else mismatch

            replace = scores[i - 1, j - 1] + substitution
            delete = scores[i - 1, j] + gap
            insert = scores[i, j - 1] + gap
            score = max(replace, delete, insert)
            scores[i, j] = score

            # Determine the operation, preserving the priority of the traceback
            if score == replace:
                changes[i, j] = MATCH if equal else SUBSTITUTE
            elif score == delete:
                changes[i, j] = DELETE
            else:
                changes[i, j] = INSERT

    return scores, changes


@nb.jit(nopython=True)
def _needleman_wunsch_last_row_kernel(
    seq1: np.ndarray,
    seq2: np.ndarray,
    match: int,
    mismatch: int,
    gap: int,
) -> np.ndarray:
    """
    Computes the last row of the Needleman-Wunsch scoring matrix, without
    materializing the matrix itself.

    The kernel has quadratic complexity in time and linear in space, as it stores
    only two rows of the matrix. Accepts any strided views, including reversed ones,
    which is how `hirschberg_alignment` computes its backward profiles.

    Returns:
    np.ndarray: The `len(seq2) + 1` scores of aligning all of `seq1` with every prefix of `seq2`.
    """
    seq1_len = len(seq1)
    seq2_len = len(seq2)

    old_scores = np.empty(seq2_len + 1, dtype=np.int64)
    new_scores = np.empty(seq2_len + 1, dtype=np.int64)

    old_scores[0] = 0
    for j in range(1, seq2_len + 1):
        old_scores[j] = j * gap

    for i in range(1, seq1_len + 1):
        new_scores[0] = i * gap

        for j in range(1, seq2_len + 1):
            substitution = match if seq1[i - 1] == seq2[j - 1] else mismatch
            replace = old_scores[j - 1] + substitution
            delete = old_scores[j] + gap
            insert = new_scores[j - 1] + gap
            new_scores[j] = max(replace, delete, insert)

        # Swap rows
        old_scores, new_scores = new_scores, old_scores

    return old_scores


def needleman_wunsch_alignment(
    str1: str,
    str2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> Tuple[str, str, int]:
    """
    Aligns two sequences using the Needleman-Wunsch global alignment algorithm,
    keeping the whole scoring matrix in memory.

    Parameters:
    str1 (str): The first sequence to be aligned.
    str2 (str): The second sequence to be aligned.
    match (Optional[int]): The score for aligning equal symbols.
    mismatch (Optional[int]): The score for aligning different symbols.
    gap (Optional[int]): The penalty for each inserted or deleted symbol.

    Returns:
    Tuple[str, str, int]: The optimal alignment of the two sequences and the alignment score.

    Default values:
    >>> match = 1
    >>> mismatch = -1
    >>> gap = -1

    Example usage:
    >>> from hirschberg import needleman_wunsch_alignment
    >>> align1, align2, score = needleman_wunsch_alignment("AGTACGCA", "TATGC")
    >>> print("Alignment 1:", align1)
    >>> print("Alignment 2:", align2)
    >>> print("Score:", score)
    """
    match, mismatch, gap = _validate_scoring_arguments(match=match, mismatch=mismatch, gap=gap)

    seq1 = _translate_sequence(str1)
    seq2 = _translate_sequence(str2)
    scores, changes = _needleman_wunsch_kernel(seq1, seq2, match, mismatch, gap)

    align1, align2 = _reconstruct_alignment(changes, seq1, seq2, chr)
    return align1, align2, int(scores[-1, -1])


def needleman_wunsch_matrix(
    str1: str,
    str2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> np.ndarray:
    """Returns the full `(len(str1) + 1, len(str2) + 1)` Needleman-Wunsch scoring matrix."""
    match, mismatch, gap = _validate_scoring_arguments(match=match, mismatch=mismatch, gap=gap)
    scores, _ = _needleman_wunsch_kernel(_translate_sequence(str1), _translate_sequence(str2), match, mismatch, gap)
    return scores


def needleman_wunsch_last_row(
    str1: str,
    str2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> np.ndarray:
    """
    Computes the scores of aligning the whole `str1` against every prefix of `str2`,
    equivalent to the last row of `needleman_wunsch_matrix`, in linear space.

    Parameters:
    str1 (str): The sequence spanning the rows of the matrix.
    str2 (str): The sequence spanning the columns of the matrix.
    match (Optional[int]): The score for aligning equal symbols.
    mismatch (Optional[int]): The score for aligning different symbols.
    gap (Optional[int]): The penalty for each inserted or deleted symbol.

    Returns:
    np.ndarray: The score profile of length `len(str2) + 1`.
    """
    match, mismatch, gap = _validate_scoring_arguments(match=match, mismatch=mismatch, gap=gap)
    return _needleman_wunsch_last_row_kernel(
        _translate_sequence(str1),
        _translate_sequence(str2),
        match,
        mismatch,
        gap,
    )


def needleman_wunsch_score(
    str1: str,
    str2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> int:
    """
    Measures the global alignment score of two sequences. Uses less memory than the alignment function.

    Example usage:
    >>> from hirschberg import needleman_wunsch_score
    >>> score = needleman_wunsch_score("GATTACA", "GCATGCU")
    >>> print("Score:", score)
    """
    profile = needleman_wunsch_last_row(str1, str2, match=match, mismatch=mismatch, gap=gap)
    return int(profile[-1])


def find_split_point(forward: np.ndarray, backward: np.ndarray) -> int:
    """
    Finds the column through which an optimal alignment passes at the middle row.

    Parameters:
    forward (np.ndarray): Scores of the upper half against every prefix of the columns.
    backward (np.ndarray): Scores of the reversed lower half against every prefix
        of the reversed columns, as computed by `needleman_wunsch_last_row`.

    Returns:
    int: The smallest column `j` maximizing `forward[j] + backward[len(backward) - 1 - j]`.
    """
    if len(forward) != len(backward):
        raise ValueError(f"Score profiles must have equal lengths, got {len(forward)} and {len(backward)}.")

    combined = np.asarray(forward) + np.asarray(backward)[::-1]
    # `np.argmax` returns the first occurrence of the maximum
    return int(np.argmax(combined))


def _hirschberg_kernel(
    seq1: np.ndarray,
    seq2: np.ndarray,
    match: int,
    mismatch: int,
    gap: int,
    parts1: List[str],
    parts2: List[str],
) -> int:
    """
    Appends the optimal alignment of two sequence views to `parts1` and `parts2`,
    left to right, and returns its score. The recursion is driven from Python,
    while both halves of every split are profiled by compiled kernels.
    """
    seq1_len = len(seq1)
    seq2_len = len(seq2)

    if seq1_len == 0:
        parts1.append(GAP * seq2_len)
        parts2.append(_decode_sequence(seq2))
        return seq2_len * gap

    if seq2_len == 0:
        parts1.append(_decode_sequence(seq1))
        parts2.append(GAP * seq1_len)
        return seq1_len * gap

    # A single symbol can't be halved, but the full matrix is just a couple of rows
    if seq1_len == 1 or seq2_len == 1:
        scores, changes = _needleman_wunsch_kernel(seq1, seq2, match, mismatch, gap)
        align1, align2 = _reconstruct_alignment(changes, seq1, seq2, chr)
        parts1.append(align1)
        parts2.append(align2)
        return int(scores[-1, -1])

    mid1 = seq1_len // 2
    forward = _needleman_wunsch_last_row_kernel(seq1[:mid1], seq2, match, mismatch, gap)
    backward = _needleman_wunsch_last_row_kernel(seq1[mid1:][::-1], seq2[::-1], match, mismatch, gap)
    mid2 = find_split_point(forward, backward)
    score = int(forward[mid2] + backward[seq2_len - mid2])
    logger.debug("Split %dx%d alignment at row %d, column %d, score %d", seq1_len, seq2_len, mid1, mid2, score)

    # The order of these calls defines the order of the columns in the output
    _hirschberg_kernel(seq1[:mid1], seq2[:mid2], match, mismatch, gap, parts1, parts2)
    _hirschberg_kernel(seq1[mid1:], seq2[mid2:], match, mismatch, gap, parts1, parts2)
    return score


def hirschberg_alignment(
    str1: str,
    str2: str,
    match: Optional[int] = None,
    mismatch: Optional[int] = None,
    gap: Optional[int] = None,
) -> Tuple[str, str, int]:
    """
    Aligns two sequences using Hirschberg's divide-and-conquer refinement of the
    Needleman-Wunsch global alignment algorithm.

    The first sequence is halved at every level, and the matching column of the second
    sequence is found by combining the last rows of the upper half and of the reversed
    lower half. So the algorithm has quadratic complexity in time, but only linear in space,
    and the recursion depth is logarithmic in the length of the first sequence.

    Parameters:
    str1 (str): The first sequence to be aligned.
    str2 (str): The second sequence to be aligned.
    match (Optional[int]): The score for aligning equal symbols.
    mismatch (Optional[int]): The score for aligning different symbols.
    gap (Optional[int]): The penalty for each inserted or deleted symbol.

    Returns:
    Tuple[str, str, int]: The optimal alignment of the two sequences and the alignment score.

    Example usage:
    >>> from hirschberg import hirschberg_alignment
    >>> align1, align2, score = hirschberg_alignment("AGTACGCA", "TATGC")
    >>> print("Alignment 1:", align1)
    >>> print("Alignment 2:", align2)
    >>> print("Score:", score)
    """
    match, mismatch, gap = _validate_scoring_arguments(match=match, mismatch=mismatch, gap=gap)

    seq1 = _translate_sequence(str1)
    seq2 = _translate_sequence(str2)
    parts1: List[str] = []
    parts2: List[str] = []
    score = _hirschberg_kernel(seq1, seq2, match, mismatch, gap, parts1, parts2)
    return "".join(parts1), "".join(parts2), score


def format_score_matrix(scores: np.ndarray) -> str:
    """
    Renders a scoring matrix as text, one row per line, with every cell
    right-aligned to the width of the widest value.
    """
    scores = np.atleast_2d(np.asarray(scores))
    width = max((len(str(value)) for value in scores.flat), default=1)
    return "\n".join(" ".join(str(value).rjust(width) for value in row) for row in scores)


def colorize_alignment(align1: str, align2: str) -> Tuple[str, str]:
    """
    Colorizes the alignment strings for visual distinction between matches, mismatches, and gaps.

    Parameters:
    align1 (str): The first aligned sequence.
    align2 (str): The second aligned sequence.

    Returns:
    Tuple[str, str]: The colorized alignments.
    """
    colored_align1: List[str] = []
    colored_align2: List[str] = []

    for a, b in zip(align1, align2):
        if a == GAP or b == GAP:
            color = Fore.BLACK
        elif a == b:
            color = Fore.GREEN
        else:
            color = Fore.RED
        colored_align1.append(color + a + Style.RESET_ALL)
        colored_align2.append(color + b + Style.RESET_ALL)

    return "".join(colored_align1), "".join(colored_align2)


def main():
    # Let's parse the input arguments for alignments in CLI
    import argparse

    parser = argparse.ArgumentParser(description="Linear-space global alignment CLI utility")
    parser.add_argument(
        "seq1",
        type=str,
        help="The first sequence to be aligned, like AGTACGCA",
    )
    parser.add_argument(
        "seq2",
        type=str,
        help="The second sequence to be aligned, like TATGC",
    )
    parser.add_argument(
        "--match",
        type=int,
        default=None,
        help=f"The score for aligning equal symbols; uses {default_match} by default",
    )
    parser.add_argument(
        "--mismatch",
        type=int,
        default=None,
        help=f"The score for aligning different symbols; uses {default_mismatch} by default",
    )
    parser.add_argument(
        "--gap",
        type=int,
        default=None,
        help=f"The penalty for each inserted or deleted symbol; uses {default_gap} by default",
    )
    parser.add_argument(
        "--algorithm",
        choices=["hirschberg", "needleman-wunsch"],
        default="hirschberg",
        help="Use the linear-space Hirschberg algorithm or the quadratic-space Needleman-Wunsch",
    )
    parser.add_argument(
        "--matrix",
        action="store_true",
        help="Also print the full Needleman-Wunsch scoring matrix",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log the split points chosen by the Hirschberg recursion",
    )
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(name)s: %(message)s")

    aligner = hirschberg_alignment if args.algorithm == "hirschberg" else needleman_wunsch_alignment
    try:
        align1, align2, score = aligner(
            args.seq1,
            args.seq2,
            match=args.match,
            mismatch=args.mismatch,
            gap=args.gap,
        )
        scores = None
        if args.matrix:
            scores = needleman_wunsch_matrix(args.seq1, args.seq2, match=args.match, mismatch=args.mismatch, gap=args.gap)
    except Exception as exc:
        print("Error:", exc)
        exit(1)

    colored1, colored2 = colorize_alignment(align1, align2)
    print()
    print("Sequence 1:", args.seq1)
    print("Sequence 2:", args.seq2)
    if scores is not None:
        print()
        print(format_score_matrix(scores))
    print()
    print("Alignment 1:", colored1)
    print("Alignment 2:", colored2)
    print("Score:      ", score)


if __name__ == "__main__":
    main()
