import argparse
import csv
import logging
import os
from datetime import datetime

from mvnorm.eval import compare_strategies
from mvnorm.layer_config import MVNConfig
from mvnorm.settings import load_settings

logger = logging.getLogger(__name__)

# cols divisible by 8, by 4 only, and by neither (both groupings)
problem_shapes = [
    (2, 3, 16, 16),
    (4, 8, 6, 6),
    (2, 3, 5, 7),
    (1, 64, 56, 56),
    (8, 3, 33, 1),
]

configs = [
    MVNConfig(normalize_variance=True, across_channels=False),
    MVNConfig(normalize_variance=True, across_channels=True),
    MVNConfig(normalize_variance=False, across_channels=False),
]


def initialize_csv(csv_path):
    """Initialize CSV file with headers"""
    os.makedirs(os.path.dirname(csv_path) or ".", exist_ok=True)
    with open(csv_path, 'w', newline='') as f:
        writer = csv.writer(f)
        writer.writerow([
            'Shape',
            'Normalize_Variance',
            'Across_Channels',
            'Hardware',
            'Batched_Ran',
            'Correctness',
            'Max_Difference',
            'Rowwise_Runtime_ms',
            'Batched_Runtime_ms',
            'Speedup',
            'Timestamp'
        ])


def append_result_to_csv(csv_path, shape, config, result):
    """Append a single result to the CSV file"""
    with open(csv_path, 'a', newline='') as f:
        writer = csv.writer(f)
        writer.writerow([
            'x'.join(str(s) for s in shape),
            config.normalize_variance,
            config.across_channels,
            result.metadata.get('hardware', 'N/A'),
            result.batched_ran,
            result.correctness,
            ';'.join(result.metadata.get('max_difference', [])) or 'N/A',
            f"{result.ref_runtime:.4f}",
            f"{result.runtime:.4f}",
            f"{result.speedup:.2f}",
            datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        ])


def main():
    parser = argparse.ArgumentParser(description="Compare batched and row-wise MVN strategies")
    parser.add_argument("--csv", default="output/mvn_benchmark.csv", help="Where to write results")
    parser.add_argument("--trials", type=int, default=5, help="Correctness trials per problem")
    parser.add_argument("--perf-trials", type=int, default=100, help="Timed runs per strategy")
    parser.add_argument("--atol", type=float, default=1e-4)
    args = parser.parse_args()

    settings = load_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s | %(levelname)s | %(message)s",
    )

    initialize_csv(args.csv)
    logger.info(f"Writing results to {args.csv}")

    print("\n" + "=" * 80)
    print("MVN STRATEGY COMPARISON")
    print("=" * 80)
    for shape in problem_shapes:
        for config in configs:
            result = compare_strategies(
                shape,
                config,
                num_correct_trials=args.trials,
                num_perf_trials=args.perf_trials,
                atol=args.atol,
                measure_performance=True,
            )
            append_result_to_csv(args.csv, shape, config, result)

            label = f"{list(shape)} nv={config.normalize_variance} ac={config.across_channels}"
            if not result.batched_ran:
                reason = result.metadata.get('error') or result.metadata.get('batched_error', 'unknown')
                print(f"  {label}: batched path unavailable ({reason})")
                continue
            print(f"  {label}: correct={result.correctness} {result.metadata.get('correctness_trials', '')}")
            if result.correctness:
                print(f"    Row-wise: {result.ref_runtime:.4f} ms | Batched: {result.runtime:.4f} ms | Speedup: {result.speedup:.2f}x")
    print("=" * 80)


if __name__ == "__main__":
    main()
