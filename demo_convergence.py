import json
import time

from lwwset.client import ReplicaClient


NODE_URLS = [
    'http://localhost:8001',
    'http://localhost:8002',
    'http://localhost:8003'
]


def print_banner():
    print("\n" + "=" * 60)
    print("       LWW-Set Replica Convergence Demo")
    print("=" * 60)
    print("\nThis demo showcases:")
    print("  - Independent replicas accepting writes without coordination")
    print("  - Last-writer-wins resolution of concurrent add/remove")
    print("  - Convergence after gossip, even with a node down")
    print("=" * 60 + "\n")


def node_clients():
    """One client pinned to each node, so writes land where we say."""
    return [ReplicaClient([url]) for url in NODE_URLS]


def print_views(clients, values):
    for url, client in zip(NODE_URLS, clients):
        summary = client.get_summary()
        if summary is None:
            print(f"  {url}: OFFLINE")
            continue
        present = {value: client.lookup(value) for value in values}
        print(f"  {url}: {json.dumps(present)}  members={summary['members']}")


def gossip_all(clients):
    for url, client in zip(NODE_URLS, clients):
        result = client.gossip()
        if result is None:
            print(f"  {url}: gossip failed (node offline)")
        else:
            ok = sum(1 for succeeded in result['peers'].values() if succeeded)
            print(f"  {url}: pushed state to {ok}/{len(result['peers'])} peers")


def step1_check_nodes(clients):
    print("\n" + "=" * 60)
    print("STEP 1: Checking Replica Status")
    print("=" * 60 + "\n")

    while True:
        all_online = True
        for i, (url, client) in enumerate(zip(NODE_URLS, clients)):
            is_online = client.health() is not None
            symbol = "[+]" if is_online else "[-]"
            print(f"  {symbol} Replica {i+1} ({url}): {'ONLINE' if is_online else 'OFFLINE'}")
            all_online = all_online and is_online

        if all_online:
            print("\nAll replicas are running!")
            return True

        print("\nPlease start replicas with: python -m lwwset.node.server --port 800N")
        time.sleep(5)


def step2_concurrent_writes(clients):
    print("\n" + "=" * 60)
    print("STEP 2: Concurrent Add and Remove")
    print("=" * 60 + "\n")

    print("Replica 1 adds 'x' at t=5, replica 2 removes 'x' at t=10")
    clients[0].add('x', timestamp=5.0)
    clients[1].remove('x', timestamp=10.0)

    print("Replica 2 removes 'y' at t=1, replica 3 adds 'y' at t=2")
    clients[1].remove('y', timestamp=1.0)
    clients[2].add('y', timestamp=2.0)

    print("Replica 3 adds 'z' and removes it at the same timestamp t=7")
    clients[2].add('z', timestamp=7.0)
    clients[2].remove('z', timestamp=7.0)

    print("\nViews before gossip:")
    print_views(clients, ['x', 'y', 'z'])


def step3_gossip(clients):
    print("\n" + "=" * 60)
    print("STEP 3: Gossip")
    print("=" * 60 + "\n")

    gossip_all(clients)
    print("\nViews after gossip:")
    print_views(clients, ['x', 'y', 'z'])


def step4_partition(clients):
    print("\n" + "=" * 60)
    print("STEP 4: Writes During a Node Failure")
    print("=" * 60 + "\n")

    print("In another terminal, stop replica 2.")
    input("\nPress Enter after stopping it...")

    print("Replica 1 re-adds 'x' at t=20 while replica 2 is down")
    clients[0].add('x', timestamp=20.0)
    gossip_all(clients)

    print("\nRestart replica 2, then press Enter.")
    input()
    gossip_all(clients)

    print("\nViews after recovery:")
    print_views(clients, ['x', 'y', 'z'])


def step5_verify(clients):
    print("\n" + "=" * 60)
    print("STEP 5: Consistency Verification")
    print("=" * 60 + "\n")

    member_lists = []
    for url, client in zip(NODE_URLS, clients):
        members = client.members()
        if members is None:
            print(f"  {url}: OFFLINE")
        else:
            member_lists.append(json.dumps(members))
            print(f"  {url}: {members}")

    if len(member_lists) >= 2 and len(set(member_lists)) == 1:
        print("\n[+] All online replicas report IDENTICAL membership!")
    else:
        print("\n[!] Replica views differ (run another gossip round)")


def main():
    print_banner()
    clients = node_clients()

    input("Press Enter to start the demo...")
    step1_check_nodes(clients)

    input("\nPress Enter to continue to Step 2...")
    step2_concurrent_writes(clients)

    input("\nPress Enter to continue to Step 3...")
    step3_gossip(clients)

    input("\nPress Enter to continue to Step 4 (Node Failure)...")
    step4_partition(clients)

    step5_verify(clients)
    print("\nThank you for watching the LWW-Set demo!")


if __name__ == "__main__":
    main()
