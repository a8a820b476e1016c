import time
import httpx
import subprocess

from api.schemas import snapshot_to_payload
from models.sample_data import sample_snapshot


def run_verification():
    print("Starting Ownership Propagation HTTP Server...")
    server_process = subprocess.Popen(
        ["python", "-m", "uvicorn", "api.http_server:app", "--port", "8000"],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True
    )

    # Wait for server to start
    time.sleep(3)

    try:
        client = httpx.Client(base_url="http://127.0.0.1:8000")

        print("Checking server health...")
        health = client.get("/health")
        print(f"Health Status: {health.json()}")

        snapshot = snapshot_to_payload(sample_snapshot(), meta={"name": "sample"})

        print("\nComputing indirect ownership for the sample dataset...")
        indirect_resp = client.post(
            "/v1/indirect-totals",
            json={"snapshot": snapshot, "caller_identity": "verification-script"},
        )
        indirect_data = indirect_resp.json()
        print(f"Indirect Response Status: {indirect_data['status']}")
        print(f"Audit ID: {indirect_data['audit_id']}")
        alpha = indirect_data["data"]["indirect_totals"]["entity:a"]
        print(f"Alpha Holdings -> Aggregator I: {alpha['9']}% (expected ~7.30%)")
        print(f"Alpha Holdings -> Final Asset J: {alpha['10']}% (expected ~2.34%)")

        print("\nTracing the paths behind Alpha Holdings -> Aggregator I...")
        trace_resp = client.post(
            "/v1/ownership-paths",
            json={
                "snapshot": snapshot,
                "source_key": "entity:a",
                "object_id": "9",
                "caller_identity": "verification-script",
            },
        )
        for path in trace_resp.json()["data"]["paths"]:
            print(f"  {' -> '.join(path['nodes'])}: {path['contribution_percent']}%")

        print("\nQuerying Audit Log for verification...")
        audit_resp = client.post(
            "/v1/audit-log",
            json={"operation": "compute_indirect", "limit": 5, "caller_identity": "verification-script"},
        )
        audit_data = audit_resp.json()

        print("\n--- Recent Audit Records ---")
        for record in audit_data.get("records", []):
            print(
                f"ID: {record['id']} | Op: {record['operation']} | Digest: {record['input_digest'][:12]} "
                f"| Caller: {record['caller_identity']} | TS: {record['timestamp']}"
            )

        found = any(
            r["operation"] == "compute_indirect" and r["caller_identity"] == "verification-script"
            for r in audit_data["records"]
        )
        if found and abs(alpha["9"] - 7.30) <= 0.01:
            print("\nVerification SUCCESS: figures match and the computation was audited.")
        else:
            print("\nVerification FAILURE: unexpected figures or missing audit record.")

    finally:
        print("\nShutting down server...")
        server_process.terminate()
        try:
            server_process.wait(timeout=5)
        except subprocess.TimeoutExpired:
            server_process.kill()


if __name__ == "__main__":
    run_verification()
