"""
Real-time monitoring dashboard for the replica cluster.

This script monitors the health and LWW-Set state of all replica nodes,
providing a live view of how their membership views converge.
"""

import requests
import time
import os
import json
from datetime import datetime


# Replica URLs to monitor
replica_urls = [
    'http://localhost:8001',
    'http://localhost:8002',
    'http://localhost:8003'
]


def clear_screen():
    """Clear the terminal screen."""
    os.system('cls' if os.name == 'nt' else 'clear')


def get_replica_status(url: str) -> dict:
    """
    Get the status of a replica node.

    Args:
        url: Base URL of the node

    Returns:
        Dictionary with status information
    """
    result = {
        'url': url,
        'online': False,
        'health': None,
        'crdt_summary': None,
        'error': None
    }

    try:
        health_response = requests.get(f"{url}/health", timeout=2)
        if health_response.status_code == 200:
            result['online'] = True
            result['health'] = health_response.json()

        crdt_response = requests.get(f"{url}/crdt/summary", timeout=2)
        if crdt_response.status_code == 200:
            result['crdt_summary'] = crdt_response.json()

    except requests.exceptions.ConnectionError:
        result['error'] = "Connection refused"
    except requests.exceptions.Timeout:
        result['error'] = "Request timeout"
    except requests.exceptions.RequestException as e:
        result['error'] = str(e)
    except json.JSONDecodeError:
        result['error'] = "Invalid JSON response"

    return result


def print_replica_status(status: dict):
    """Print the status of a replica node."""
    status_str = "\033[92mONLINE\033[0m" if status['online'] else "\033[91mOFFLINE\033[0m"
    print(f"\n{'='*60}")
    print(f"Replica: {status['url']}")
    print(f"Status: {status_str}")

    if not status['online']:
        if status['error']:
            print(f"Error: {status['error']}")
        return

    if status['health']:
        print(f"Node ID: {status['health'].get('node_id', 'N/A')}")

    summary = status['crdt_summary']
    if summary:
        print(f"\n--- LWW-Set State ---")
        print(f"Add Log: {summary.get('add_log_size', 'N/A')}")
        print(f"Remove Log: {summary.get('remove_log_size', 'N/A')}")
        print(f"Surviving Entries: {summary.get('membership_size', 'N/A')}")

        members = summary.get('members', [])
        if members:
            print(f"\nMembers: {', '.join(members)}")
        else:
            print(f"\nMembers: (none)")


def print_dashboard():
    """Print the monitoring dashboard."""
    clear_screen()

    print("=" * 60)
    print("       REPLICA CLUSTER MONITOR")
    print("=" * 60)
    print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"Monitoring {len(replica_urls)} replicas")

    online_count = 0
    views = set()
    for url in replica_urls:
        status = get_replica_status(url)
        print_replica_status(status)
        if status['online']:
            online_count += 1
            if status['crdt_summary']:
                views.add(tuple(status['crdt_summary'].get('members', [])))

    print(f"\n{'='*60}")
    print(f"Cluster Health: {online_count}/{len(replica_urls)} replicas online")
    if len(views) == 1:
        print("Membership: CONVERGED")
    elif views:
        print(f"Membership: {len(views)} distinct views (gossip pending)")
    print("=" * 60)
    print("\nPress Ctrl+C to exit")


def main():
    """Main monitoring loop."""
    print("Starting replica cluster monitor...")
    print(f"Monitoring URLs: {replica_urls}")
    print("Refreshing every 5 seconds...")
    time.sleep(2)

    try:
        while True:
            print_dashboard()
            time.sleep(5)
    except KeyboardInterrupt:
        print("\n\nMonitoring stopped. Goodbye!")


if __name__ == "__main__":
    main()
