"""Generate identity key files for local testing: secrets/<name>.json for each name given."""
import os, json, sys
from karma.signing import generate_keypair

def main(names):
    os.makedirs("secrets", exist_ok=True)
    for name in names:
        identity, private_key_b64 = generate_keypair()
        path = f"secrets/{name}.json"
        with open(path, "w", encoding="utf-8") as f:
            json.dump({"identity": identity, "private_key_b64": private_key_b64}, f, indent=2)
        print(f"{name}: {identity}")

if __name__ == "__main__":
    main(sys.argv[1:] or ["alice", "bob"])
