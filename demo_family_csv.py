#!/usr/bin/env python3
"""
Family CSV Demo: CSV → records → JSON / YAML / CSV

Shows the full workflow:
1. Write a small CSV file
2. Read it in every parse mode
3. Dump it again in other formats
4. Find the results with a recursive glob
"""

import tempfile
from pathlib import Path

from xfilesystem import ParseMode, XFilesystem


FAMILY_CSV = """name,birthday,profession
John,1992-02-08,Teacher
Jane,1994-03-22,Developer
Charly,2016-11-11,
"""


def main():
    xfs = XFilesystem()
    workdir = Path(tempfile.mkdtemp(prefix="xfs-demo-"))
    source = workdir / "family.csv"
    xfs.dump_file(source, FAMILY_CSV)

    print("=" * 80)
    print("FAMILY CSV DEMO")
    print("=" * 80)

    # =========================================================================
    # STEP 1: Read in every mode
    # =========================================================================
    print("\n1. READING CSV...")
    for mode in ParseMode:
        data = xfs.read_csv_file(source, mode)
        print(f"   ✓ {mode.value:<6} -> {len(data)} item(s), first: {data[0]}")

    # =========================================================================
    # STEP 2: Dump in other formats
    # =========================================================================
    print("\n2. DUMPING...")
    records = xfs.read_csv_file(source, ParseMode.ASSOC)
    xfs.dump_json_file(workdir / "dist" / "family.json", records)
    xfs.dump_yaml_file(workdir / "dist" / "family.yaml", records)
    xfs.dump_python_file(workdir / "dist" / "family.py", records)
    xfs.dump_csv_file(workdir / "dist" / "family-pipes.csv", records, delimiter="||")

    # =========================================================================
    # STEP 3: Glob
    # =========================================================================
    print("\n3. FILES BELOW WORKDIR:")
    print("-" * 80)
    for path in xfs.glob(workdir / "**" / "*"):
        print(f"   {path}")

    print("\n4. SAMPLE OUTPUT (family-pipes.csv):")
    print("-" * 80)
    for line in xfs.read_file(workdir / "dist" / "family-pipes.csv").splitlines():
        print(f"   {line}")


if __name__ == "__main__":
    main()
