import io
import os
import tempfile
import unittest

from helpers import BANNER, DATA_FILE, make_dump, section_body

from lock_profiler.errors import (
    CapacityExceededError,
    InputError,
    MalformedLineError,
    TruncatedInputError,
)
from lock_profiler.parser import LineReader, ingest, load_lock_data, read_lock_data
from lock_profiler.records import Metric

STACK_A = ("mutex_lock+5", "kernfs_iop_permission+39", "inode_permission+66", "link_path_walk+120")
STACK_D = ("mutex_lock+5", "kernfs_iop_getattr+39", "vfs_getattr+30")


class TestLoadLockData(unittest.TestCase):
    def test_one_record_per_distinct_stack(self):
        records = load_lock_data(DATA_FILE)
        # three stacks in every section plus one seen only on the hold side
        self.assertEqual(len(records), 4)

    def test_all_six_slots_filled(self):
        records = load_lock_data(DATA_FILE)
        self.assertEqual(records[STACK_A].metrics, [100, 400, 10, 20, 60, 4])

    def test_stack_only_in_hold_sections(self):
        records = load_lock_data(DATA_FILE)
        self.assertEqual(records[STACK_D].metrics, [0, 0, 0, 881, 1000, 2])

    def test_called_from_follows_stack_depth(self):
        shallow = load_lock_data(DATA_FILE, stack_depth=1)[STACK_A]
        self.assertEqual(shallow.frames, ("kernfs_iop_permission+39",))
        self.assertEqual(shallow.called_from, "kernfs_iop_permission+39")

        deeper = load_lock_data(DATA_FILE, stack_depth=2)[STACK_A]
        self.assertEqual(deeper.frames, ("kernfs_iop_permission+39", "inode_permission+66"))
        self.assertEqual(deeper.called_from, "kernfs_iop_permission+39:inode_permission+66")

        # the stack runs out before the depth does
        deepest = load_lock_data(DATA_FILE, stack_depth=10)[STACK_A]
        self.assertEqual(deepest.frames, STACK_A[1:])
        # depth never changes the full stack key
        self.assertEqual(deepest.stack, shallow.stack)

    def test_depth_below_one_keeps_call_site(self):
        record = load_lock_data(DATA_FILE, stack_depth=0)[STACK_A]
        self.assertEqual(record.frames, ("kernfs_iop_permission+39",))

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(InputError):
                load_lock_data(os.path.join(tmp, "missing.out"))


class TestIngestSection(unittest.TestCase):
    def _ingest(self, lines, metric=Metric.ACQ_COUNT, records=None, **kwargs):
        reader = LineReader(lines)
        return ingest(reader, metric, {} if records is None else records, **kwargs)

    def test_repeated_stack_is_summed(self):
        frames = ["mutex_lock+5", "foo+10", "bar+3"]
        records = self._ingest(section_body([(frames, 3), (frames, 4)]))
        self.assertEqual(len(records), 1)
        (record,) = records.values()
        self.assertEqual(record[Metric.ACQ_COUNT], 7)

    def test_known_stack_new_slot(self):
        frames = ["mutex_lock+5", "foo+10"]
        records = self._ingest(section_body([(frames, 5)]), Metric.HOLD_AVG)
        self._ingest(section_body([(frames, 9)]), Metric.HOLD_MAX, records)
        (record,) = records.values()
        self.assertEqual(record.metrics, [0, 0, 0, 5, 9, 0])

    def test_empty_group_only(self):
        records = self._ingest(["@map[]: 0\n", "\n", BANNER])
        self.assertEqual(records, {})

    def test_terminator_value(self):
        records = self._ingest(["@map[\n", "  mutex_lock+5\n", "  foo+10\n", "]: 42\n", BANNER])
        (record,) = records.values()
        self.assertEqual(record.stack, ("mutex_lock+5", "foo+10"))
        self.assertEqual(record[Metric.ACQ_COUNT], 42)

    def test_terminator_without_separator(self):
        with self.assertRaises(MalformedLineError) as cm:
            self._ingest(["@map[\n", "  mutex_lock+5\n", "  foo+10\n", "] 42\n", BANNER])
        self.assertEqual(cm.exception.line_no, 4)

    def test_terminator_not_an_integer(self):
        with self.assertRaises(MalformedLineError):
            self._ingest(["@map[\n", "  mutex_lock+5\n", "  foo+10\n", "]: lots\n", BANNER])

    def test_line_without_terminator(self):
        with self.assertRaises(MalformedLineError):
            self._ingest(["@map[\n", "  mutex_lock+5\n", "  foo+10"])

    def test_group_without_call_site(self):
        with self.assertRaises(MalformedLineError):
            self._ingest(["@map[\n", "  mutex_lock+5\n", "]: 1\n", BANNER])

    def test_frame_outside_group(self):
        with self.assertRaises(MalformedLineError):
            self._ingest(["  stray+1\n", BANNER])

    def test_overlong_line(self):
        with self.assertRaises(CapacityExceededError):
            reader = LineReader(["@map[\n", "  " + "x" * 100 + "\n", BANNER], max_line_length=20)
            ingest(reader, Metric.ACQ_AVG, {})

    def test_section_never_closed(self):
        with self.assertRaises(TruncatedInputError):
            self._ingest(["@map[\n", "  mutex_lock+5\n", "  foo+10\n", "]: 1\n"])


class TestReadLockData(unittest.TestCase):
    def test_distinct_stacks_across_sections(self):
        a = ["mutex_lock+5", "a+1"]
        b = ["mutex_lock+5", "b+1"]
        c = ["mutex_lock+5", "c+1"]
        dump = make_dump([[(a, 1)], [(a, 2)], [(b, 3)], [], [(c, 4)], [(a, 5), (c, 6)]])
        records = read_lock_data(io.StringIO(dump))
        self.assertEqual(len(records), 3)
        self.assertEqual(records[tuple(a)].metrics, [1, 2, 0, 0, 0, 5])
        self.assertEqual(records[tuple(c)].metrics, [0, 0, 0, 0, 4, 6])

    def test_truncated_dump(self):
        dump = make_dump([[], [], [], [], [], []])
        # cut inside the last section
        cut = dump[:dump.index("section 5")]
        with self.assertRaises(TruncatedInputError):
            read_lock_data(io.StringIO(cut))


if __name__ == "__main__":
    unittest.main()
