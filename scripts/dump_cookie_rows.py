import argparse
import sqlite3
from pathlib import Path


def main() -> None:
    parser = argparse.ArgumentParser(description="Dump raw cookie rows for a domain for inspection.")
    parser.add_argument("--cookies", default="Cookies", help="Path to a copy of the Chromium cookies SQLite DB.")
    parser.add_argument("--domain", default="blacksmith.sh", help="Domain substring matched against host_key.")
    args = parser.parse_args()

    cookies_path = Path(args.cookies).resolve()
    if not cookies_path.exists():
        raise SystemExit(f"Cookies file not found: {cookies_path}")

    conn = sqlite3.connect(f"file:{cookies_path}?mode=ro", uri=True)
    cur = conn.cursor()
    cur.execute(
        "SELECT name, host_key, path, length(value), length(encrypted_value), hex(substr(encrypted_value, 1, 3)) "
        "FROM cookies WHERE host_key LIKE ?",
        (f"%{args.domain}%",),
    )

    rows = cur.fetchall()
    if not rows:
        print("No matching cookies.")
    else:
        for row in rows:
            name, host_key, path, value_len, encrypted_len, marker_hex = row
            print("-" * 80)
            print(f"Name: {name}")
            print(f"Host: {host_key}")
            print(f"Path: {path}")
            print(f"Value length: {value_len}")
            print(f"Encrypted length: {encrypted_len}")
            print(f"Version marker: {bytes.fromhex(marker_hex or '')!r}")

    conn.close()


if __name__ == "__main__":
    main()
