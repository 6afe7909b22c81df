from pathlib import Path

from rangedl.core.interfaces import FileSink


class LocalFileWriter(FileSink):
    def write(self, filepath: Path, data: bytes) -> int:
        """Writes data to filepath via a sibling .part file, then renames it into place."""
        filepath = Path(filepath)
        if filepath.parent and not filepath.parent.exists():
            filepath.parent.mkdir(parents=True, exist_ok=True)

        part_file = filepath.with_name(filepath.name + ".part")
        with open(part_file, 'wb') as f:
            f.write(data)
            f.flush()
        part_file.replace(filepath)
        return len(data)
