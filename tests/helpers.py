import zipfile
from pathlib import Path


FAKE_MARP = Path(__file__).resolve().parent / "fake_marp.py"


def make_deck(slides, directive=""):
    """Marp deck with front matter and the given number of slides."""
    body = "\n\n---\n\n".join(f"# Slide {i}" for i in range(1, slides + 1))
    return f"---\nmarp: true\n---\n\n{directive}\n{body}\n"


def work_area_entries(settings):
    entries = []
    for root in (settings.uploads_root, settings.output_root):
        if root.exists():
            entries.extend(root.iterdir())
    return entries


def list_archive_entries(zip_path):
    with zipfile.ZipFile(zip_path) as zf:
        return [info.filename for info in zf.infolist() if not info.is_dir()]


def process_gone(pid):
    """True once pid has exited (a zombie waiting to be reaped counts as gone)."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except (FileNotFoundError, ProcessLookupError):
        return True
    return stat.rsplit(")", 1)[1].split()[0] == "Z"
