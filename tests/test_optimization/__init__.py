"""
Test suite for the Cross-Entropy optimization framework.

Test Structure:
- Result types and parallel options (test_types.py)
- Base contexts, level updates and stopping rules (test_base.py)
- Shared program engine (test_program.py)
- System performance optimizer (test_optimizer.py)
- Rare event probability estimator (test_estimator.py)
- Sampling routines (test_sampling.py)
- Concrete contexts (test_*_context.py)
- One-call continuous optimization (test_continuous_optimization.py)
- Convergence plots (test_visualization.py)
"""
