"""
CSV file handling for scan results and hop traces.
"""

import csv
from pathlib import Path
from typing import Iterable, List, Optional

from loguru import logger

from netdiag.modules.base import HopRecord, HopStatus, PortStatus, ProbeResult

SCAN_FIELDNAMES = ["Port", "Status", "Service", "ElapsedMilliseconds", "ErrorMessage"]
HOP_FIELDNAMES = ["Hop", "IP", "Hostname", "Status", "RTT(ms)"]


def _optional(value: Optional[str]) -> Optional[str]:
    return value if value else None


class CSVHandler:
    """Write and read one CSV file of results."""

    def __init__(self, csv_file: Path):
        """
        Initialize CSV handler.

        Args:
            csv_file: Path to CSV file
        """
        self.csv_file = Path(csv_file)

    def _write(self, fieldnames: List[str], rows: Iterable[dict]) -> int:
        self.csv_file.parent.mkdir(parents=True, exist_ok=True)
        count = 0
        with open(self.csv_file, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames)
            writer.writeheader()
            for row in rows:
                writer.writerow(row)
                count += 1
        logger.debug(f"Wrote {count} row(s) to {self.csv_file}")
        return count

    def _read(self) -> List[dict]:
        if not self.csv_file.exists():
            return []
        with open(self.csv_file, "r", newline="", encoding="utf-8") as f:
            return list(csv.DictReader(f))

    def write_scan_results(self, results: Iterable[ProbeResult]) -> int:
        """
        Write port scan results, one row per result in the given order.

        Returns:
            Number of rows written
        """
        return self._write(
            SCAN_FIELDNAMES,
            (
                {
                    "Port": r.port,
                    "Status": r.status.value,
                    "Service": r.service_name or "",
                    "ElapsedMilliseconds": r.elapsed_millis,
                    "ErrorMessage": r.error_message or "",
                }
                for r in results
            ),
        )

    def read_scan_results(self) -> List[ProbeResult]:
        return [
            ProbeResult(
                port=int(row["Port"]),
                status=PortStatus(row["Status"]),
                service_name=_optional(row.get("Service")),
                elapsed_millis=int(row.get("ElapsedMilliseconds") or 0),
                error_message=_optional(row.get("ErrorMessage")),
            )
            for row in self._read()
        ]

    def write_hops(self, hops: Iterable[HopRecord]) -> int:
        """Write a hop trace, one row per hop in the given order."""
        return self._write(
            HOP_FIELDNAMES,
            (
                {
                    "Hop": h.hop_index,
                    "IP": h.address,
                    "Hostname": h.hostname or "",
                    "Status": h.status.value,
                    "RTT(ms)": "" if h.round_trip_millis is None else h.round_trip_millis,
                }
                for h in hops
            ),
        )

    def read_hops(self) -> List[HopRecord]:
        return [
            HopRecord(
                hop_index=int(row["Hop"]),
                address=row.get("IP") or "*",
                hostname=_optional(row.get("Hostname")),
                status=HopStatus(row["Status"]),
                round_trip_millis=int(row["RTT(ms)"]) if row.get("RTT(ms)") else None,
            )
            for row in self._read()
        ]
