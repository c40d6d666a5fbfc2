"""
Tests for the in-process convergence experiment.
"""

import pytest
import sys
import os

import numpy as np

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from run_experiment import expected_members, generate_workload, run_experiment, run_trial


class TestExperiment:
    """Tests for the random-workload convergence experiment."""

    def test_expected_members(self):
        workloads = [
            [('add', 'x', 5.0), ('add', 'y', 1.0)],
            [('remove', 'x', 10.0), ('remove', 'y', 1.0), ('remove', 'z', 3.0)],
        ]
        assert expected_members(workloads) == {b'y'}

    def test_generate_workload_shape(self):
        rng = np.random.default_rng(0)
        workloads = generate_workload(rng, n_replicas=3, n_ops=10, domain_size=4, remove_ratio=0.5)

        assert len(workloads) == 3
        assert all(len(ops) == 10 for ops in workloads)
        assert all(kind in ('add', 'remove') for ops in workloads for kind, _, _ in ops)

    def test_trial_converges(self):
        rng = np.random.default_rng(7)
        outcome = run_trial(rng, 1, n_replicas=4, n_ops=40, domain_size=6,
                            remove_ratio=0.4, gossip_rounds=8)

        assert outcome['converged']
        assert outcome['correct']
        assert outcome['commutative']
        assert outcome['idempotent']

    def test_experiment_has_no_failures(self):
        results = run_experiment(trials=5, n_replicas=3, n_ops=30, domain_size=5,
                                 remove_ratio=0.5, gossip_rounds=5, seed=1)
        assert results['failures'] == []
        assert len(results['trials']) == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
