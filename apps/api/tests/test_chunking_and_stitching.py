"""Chunk boundary and transcript stitching tests."""

from __future__ import annotations

import unittest

from scribe.domain.chunking import ChunkBoundary, calculate_chunk_boundaries
from scribe.domain.stitching import stitch_transcripts


class ChunkBoundaryTests(unittest.TestCase):
    def test_zero_or_negative_duration_yields_no_chunks(self) -> None:
        self.assertEqual(calculate_chunk_boundaries(0, 10, 10), [])
        self.assertEqual(calculate_chunk_boundaries(-5, 10, 10), [])

    def test_eleven_minutes_splits_into_two_overlapping_chunks(self) -> None:
        self.assertEqual(
            calculate_chunk_boundaries(660, 10, 10),
            [ChunkBoundary(start=0, duration=600), ChunkBoundary(start=590, duration=70)],
        )

    def test_audio_that_fits_one_chunk_is_not_split(self) -> None:
        self.assertEqual(calculate_chunk_boundaries(300, 10, 10), [ChunkBoundary(start=0, duration=300)])
        self.assertEqual(calculate_chunk_boundaries(600, 10, 10), [ChunkBoundary(start=0, duration=600)])

    def test_overlap_not_shorter_than_chunk_returns_whole_file(self) -> None:
        self.assertEqual(calculate_chunk_boundaries(3600, 1, 60), [ChunkBoundary(start=0, duration=3600)])
        self.assertEqual(calculate_chunk_boundaries(3600, 1, 90), [ChunkBoundary(start=0, duration=3600)])

    def test_boundaries_cover_the_whole_file(self) -> None:
        total = 3725.5
        boundaries = calculate_chunk_boundaries(total, 10, 10)

        self.assertEqual(boundaries[0].start, 0)
        for previous, current in zip(boundaries, boundaries[1:]):
            self.assertEqual(current.start, previous.start + 590)
            self.assertLess(current.start, previous.start + previous.duration)
        last = boundaries[-1]
        self.assertAlmostEqual(last.start + last.duration, total)

    def test_trailing_sliver_under_one_second_is_dropped(self) -> None:
        # 1180.5s: windows start at 0 and 590; a third would start at 1180 with 0.5s left.
        boundaries = calculate_chunk_boundaries(1180.5, 10, 10)

        self.assertEqual([boundary.start for boundary in boundaries], [0, 590])
        self.assertEqual(boundaries[-1].duration, 590.5)


class StitchTranscriptsTests(unittest.TestCase):
    def test_empty_inputs(self) -> None:
        self.assertEqual(stitch_transcripts([]), "")
        self.assertEqual(stitch_transcripts(["", "  ", ""]), "")

    def test_single_chunk_is_trimmed(self) -> None:
        self.assertEqual(stitch_transcripts(["  x  "]), "x")
        self.assertEqual(stitch_transcripts(["  Hello world  "]), "Hello world")

    def test_overlapping_phrase_appears_once(self) -> None:
        first = "The patient reported feeling anxious and overwhelmed during the week"
        second = "anxious and overwhelmed during the week and described sleep difficulties"

        result = stitch_transcripts([first, second])

        self.assertEqual(
            result,
            "The patient reported feeling anxious and overwhelmed during the week and described sleep difficulties",
        )
        self.assertEqual(result.count("anxious and overwhelmed during the week"), 1)

    def test_no_overlap_joins_with_single_space(self) -> None:
        self.assertEqual(
            stitch_transcripts(["The patient arrived on time", "Sleep patterns have been erratic"]),
            "The patient arrived on time Sleep patterns have been erratic",
        )

    def test_overlap_shorter_than_three_words_is_not_removed(self) -> None:
        self.assertEqual(stitch_transcripts(["hello world", "world goodbye"]), "hello world world goodbye")

    def test_three_chunks(self) -> None:
        result = stitch_transcripts(
            [
                "alpha bravo charlie delta echo foxtrot",
                "delta echo foxtrot golf hotel india",
                "golf hotel india juliet kilo lima",
            ]
        )

        self.assertEqual(result, "alpha bravo charlie delta echo foxtrot golf hotel india juliet kilo lima")

    def test_matching_ignores_punctuation_and_keeps_original_text(self) -> None:
        result = stitch_transcripts(
            [
                "the session ended, and we discussed goals.",
                "and we discussed goals, then moved to homework",
            ]
        )

        self.assertEqual(result, "the session ended, and we discussed goals. then moved to homework")

    def test_matching_is_case_insensitive(self) -> None:
        result = stitch_transcripts(
            ["The Patient Reported feeling better", "the patient reported feeling better and sleeping well"]
        )

        self.assertEqual(result, "The Patient Reported feeling better and sleeping well")

    def test_custom_overlap_words(self) -> None:
        result = stitch_transcripts(["a b c d e f g h i j k l m n o p", "n o p q r s t"], overlap_words=3)

        self.assertEqual(result, "a b c d e f g h i j k l m n o p q r s t")

    def test_match_outside_search_window_is_ignored(self) -> None:
        filler = " ".join(f"w{index}" for index in range(60))
        result = stitch_transcripts(["one two three four", f"{filler} two three four tail"], search_window=50)

        self.assertEqual(result, f"one two three four {filler} two three four tail")

    def test_fully_duplicated_chunk_adds_nothing(self) -> None:
        self.assertEqual(
            stitch_transcripts(["we talked about sleep", "talked about sleep"]),
            "we talked about sleep",
        )


if __name__ == "__main__":
    unittest.main()
