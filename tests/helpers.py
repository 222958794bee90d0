import os

BANNER = "=" * 40 + "\n"
DATA_FILE = os.path.join(os.path.dirname(__file__), "data", "lock_data.out")


def group(frames, value, name="@map"):
    lines = [f"{name}[\n"]
    lines += [f"        {frame}\n" for frame in frames]
    lines.append(f"]: {value}\n")
    return lines


def section_body(entries):
    """Lines for one section body, closed by its '=' line."""
    lines = []
    for frames, value in entries:
        lines += group(frames, value)
    lines.append("\n")
    lines.append(BANNER)
    return lines


def make_dump(sections):
    """Build a full tracer dump from six lists of (frames, value) entries."""
    lines = ["Attaching 4 probes...\n", BANNER]
    for idx, entries in enumerate(sections):
        lines += [f"section {idx}\n", BANNER]
        lines += section_body(entries)
    lines += ["END OF DATA\n", BANNER]
    return "".join(lines)
