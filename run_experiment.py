import argparse
import json
import os

import numpy as np

from lwwset.crdt import LWWSet
from lwwset.utils.config import configure_logging


VALUE_DOMAIN = [
    'apple', 'banana', 'cherry', 'date', 'elderberry', 'fig', 'grape',
    'honeydew', 'kiwi', 'lemon', 'mango', 'nectarine', 'orange', 'papaya'
]


def generate_workload(rng, n_replicas, n_ops, domain_size, remove_ratio):
    """Random (kind, value, timestamp) operations for each replica.

    Timestamps are drawn from a small integer range so that equal
    timestamps across replicas are common.
    """
    domain = VALUE_DOMAIN[:domain_size]
    workloads = []
    for _ in range(n_replicas):
        kinds = np.where(rng.random(n_ops) < remove_ratio, 'remove', 'add')
        values = rng.choice(domain, size=n_ops)
        timestamps = rng.integers(0, n_ops, size=n_ops).astype(float)
        workloads.append([
            (str(kind), str(value), float(ts))
            for kind, value, ts in zip(kinds, values, timestamps)
        ])
    return workloads


def expected_members(workloads):
    """Members by the last-writer-wins rule, computed per value from every event."""
    latest_add = {}
    latest_remove = {}
    for ops in workloads:
        for kind, value, ts in ops:
            target = latest_add if kind == 'add' else latest_remove
            target[value] = max(ts, target.get(value, float('-inf')))

    return {
        value.encode('utf-8') for value, ts in latest_add.items()
        if ts >= latest_remove.get(value, float('-inf'))
    }


def apply_workload(replica, ops):
    for kind, value, ts in ops:
        if kind == 'add':
            replica.add(value, ts)
        else:
            replica.remove(value, ts)


def gossip(rng, replicas, rounds):
    """Random pairwise merges followed by a full exchange through replica 0."""
    n = len(replicas)
    for _ in range(rounds):
        src, dst = rng.choice(n, size=2, replace=False)
        replicas[dst].merge(replicas[src])

    for replica in replicas[1:]:
        replicas[0].merge(replica)
    for replica in replicas[1:]:
        replica.merge(replicas[0])


def run_trial(rng, trial, n_replicas, n_ops, domain_size, remove_ratio, gossip_rounds):
    workloads = generate_workload(rng, n_replicas, n_ops, domain_size, remove_ratio)
    replicas = [LWWSet(f"replica-{i}") for i in range(n_replicas)]
    for replica, ops in zip(replicas, workloads):
        apply_workload(replica, ops)

    # Commutativity on the raw local histories
    a, b = rng.choice(n_replicas, size=2, replace=False)
    ab = replicas[a].copy().merge(replicas[b])
    ba = replicas[b].copy().merge(replicas[a])
    commutative = ab.same_state(ba)

    gossip(rng, replicas, gossip_rounds)

    expected = expected_members(workloads)
    views = [replica.values() for replica in replicas]
    converged = all(replica.same_state(replicas[0]) for replica in replicas)
    correct = views[0] == expected

    # Idempotence: self-merge and re-merge of a peer change nothing
    before = replicas[0].values()
    log_size = len(replicas[0].add_log)
    replicas[0].merge(replicas[0]).merge(replicas[-1])
    idempotent = replicas[0].values() == before and len(replicas[0].add_log) == log_size

    return {
        'trial': trial,
        'converged': converged,
        'correct': correct,
        'commutative': commutative,
        'idempotent': idempotent,
        'members': sorted(v.decode('utf-8') for v in views[0]),
        'add_log_size': log_size,
        'remove_log_size': len(replicas[0].remove_log)
    }


def run_experiment(trials, n_replicas, n_ops, domain_size, remove_ratio, gossip_rounds, seed):
    """Run repeated random-workload convergence trials."""
    rng = np.random.default_rng(seed)

    print(f"\n{'='*60}")
    print("Starting LWW-Set Convergence Experiment")
    print(f"Trials: {trials}, Replicas: {n_replicas}, Ops per replica: {n_ops}")
    print(f"{'='*60}\n")

    results = {'config': {
        'trials': trials, 'replicas': n_replicas, 'ops': n_ops,
        'domain_size': domain_size, 'remove_ratio': remove_ratio,
        'gossip_rounds': gossip_rounds, 'seed': seed
    }, 'trials': []}

    for trial in range(1, trials + 1):
        outcome = run_trial(rng, trial, n_replicas, n_ops, domain_size, remove_ratio, gossip_rounds)
        results['trials'].append(outcome)
        status = "OK" if all(outcome[k] for k in ('converged', 'correct', 'commutative', 'idempotent')) else "FAIL"
        print(f"  Trial {trial}: {status} members={len(outcome['members'])} "
              f"adds={outcome['add_log_size']} removes={outcome['remove_log_size']}")

    failures = [
        t['trial'] for t in results['trials']
        if not (t['converged'] and t['correct'] and t['commutative'] and t['idempotent'])
    ]
    results['failures'] = failures

    print(f"\n>>> {trials - len(failures)}/{trials} trials converged correctly <<<")
    return results


def save_results(results, output_path):
    """Save experiment results to file."""
    os.makedirs(os.path.dirname(output_path), exist_ok=True)

    with open(output_path, 'w') as f:
        f.write("LWW-Set Convergence Experiment Results\n")
        f.write("=" * 60 + "\n\n")
        for key, value in results['config'].items():
            f.write(f"{key}: {value}\n")

        f.write("\nTrial Summary:\n")
        f.write("-" * 40 + "\n")
        for t in results['trials']:
            f.write(f"Trial {t['trial']}: converged={t['converged']} correct={t['correct']} "
                    f"commutative={t['commutative']} idempotent={t['idempotent']}\n")
            f.write(f"  Members: {', '.join(t['members']) or '(none)'}\n")

        f.write(f"\nFailed trials: {results['failures'] or 'none'}\n")

    json_path = output_path.replace('.txt', '.json')
    with open(json_path, 'w') as jf:
        json.dump(results, jf, indent=2)

    print(f"\nResults saved to {output_path}")
    print(f"JSON results saved to {json_path}")


def main():
    parser = argparse.ArgumentParser(description="Run LWW-Set Convergence Experiment")
    parser.add_argument("--trials", type=int, default=20, help="Number of random trials")
    parser.add_argument("--replicas", type=int, default=4, help="Replicas per trial")
    parser.add_argument("--ops", type=int, default=50, help="Operations per replica")
    parser.add_argument("--domain-size", type=int, default=8, help="Distinct values in play")
    parser.add_argument("--remove-ratio", type=float, default=0.4, help="Fraction of removes")
    parser.add_argument("--gossip-rounds", type=int, default=10, help="Random pairwise merges")
    parser.add_argument("--seed", type=int, default=42, help="Random seed")
    parser.add_argument("--log-level", type=str, default="WARNING", help="Log level")

    args = parser.parse_args()
    configure_logging(args.log_level)

    results = run_experiment(
        trials=args.trials,
        n_replicas=args.replicas,
        n_ops=args.ops,
        domain_size=min(args.domain_size, len(VALUE_DOMAIN)),
        remove_ratio=args.remove_ratio,
        gossip_rounds=args.gossip_rounds,
        seed=args.seed
    )

    save_results(results, 'results/experiment_results.txt')


if __name__ == "__main__":
    main()
