import argparse
import requests

BASE = "http://127.0.0.1:3000"


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--base", default=BASE)
    parser.add_argument("--session", default=None, help="reusar una sesión existente")
    args = parser.parse_args()

    session_id = args.session
    if not session_id:
        r = requests.post(f"{args.base}/api/sessions", timeout=15)
        r.raise_for_status()
        session_id = r.json()["session_id"]

    print(f"Recepcion CLI — sesión {session_id} (Enter vacío = saludo, salir con :q, estado con :s)")
    while True:
        msg = input("> ").strip()
        if msg == ":q":
            break

        if msg == ":s":
            r = requests.get(f"{args.base}/api/sessions/{session_id}", timeout=15)
            print(r.json())
            continue

        r = requests.post(f"{args.base}/api/chat", json={"session_id": session_id, "message": msg}, timeout=60)
        try:
            data = r.json()
        except ValueError:
            print(f"[HTTP {r.status_code}] {r.text}")
            continue

        if "reply" in data:
            state = data.get("state") or {}
            print(data["reply"])
            print(f"  [{state.get('step')}] {state.get('captured')}")
        else:
            print(data)

    print("Chau!")


if __name__ == "__main__":
    main()
