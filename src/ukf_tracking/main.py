#!/usr/bin/env python3
"""
Lidar + Radar Target Tracking Demo with an Unscented Kalman Filter

Runs the CTRV unscented Kalman filter over a measurement log, or over a
simulated bicycle-like target observed by interleaved lidar and radar, then
reports RMSE against ground truth and NIS consistency per sensor.

Run with: ukf-tracking [--input measurements.txt] [--output estimates.tsv]
"""

import argparse
import logging
import numpy as np
import matplotlib.pyplot as plt
from typing import Any, Dict, List, Optional, Sequence

from .exceptions import FilterError
from .fusion.parameters import UKFParameters
from .fusion.ukf import UnscentedKalmanFilter
from .sensors.lidar import LidarSensor
from .sensors.measurement import MeasurementPackage, SensorType
from .sensors.radar import RadarSensor
from .sensors.stream import read_measurement_file, simulate_measurements, write_estimates
from .simulation.trajectory import CTRVTrajectory, TrajectoryParameters
from .visualization.monitoring import NISMonitor, TrackingMetrics
from .visualization.plotter import plot_nis, plot_tracking_results

logger = logging.getLogger(__name__)


def simulate_scenario(duration: float = 25.0, seed: Optional[int] = None,
                      parameters: Optional[UKFParameters] = None) -> List[MeasurementPackage]:
    """
    Generate the demo measurement stream.

    The target follows an S-shaped CTRV path; lidar and radar alternate,
    with sensor noise matching the filter's measurement noise.
    """
    parameters = parameters if parameters is not None else UKFParameters()
    rng = np.random.default_rng(seed)

    trajectory = CTRVTrajectory(TrajectoryParameters(duration=duration))
    lidar = LidarSensor(parameters.std_laspx, parameters.std_laspy, rng=rng)
    radar = RadarSensor(parameters.std_radr, parameters.std_radphi, parameters.std_radrd, rng=rng)

    measurements = simulate_measurements(trajectory, [lidar, radar])
    logger.info(f"Simulated {len(measurements)} measurements over {duration:.1f}s "
                f"({trajectory.path_length():.1f}m path)")
    return measurements


def run_tracking(measurements: Sequence[MeasurementPackage],
                 parameters: Optional[UKFParameters] = None) -> Dict[str, Any]:
    """
    Feed a measurement stream through the filter.

    Measurements the filter rejects are logged and skipped; the filter state
    is unchanged by a rejected measurement, so tracking continues.

    Returns:
        Dictionary with the filter, per-measurement estimate rows, tracking
        metrics, the NIS monitor and the number of skipped measurements
    """
    ukf = UnscentedKalmanFilter(parameters)
    metrics = TrackingMetrics()
    nis_monitor = NISMonitor()
    rows = []
    skipped = 0

    for measurement in measurements:
        # The initializing measurement is not an update and has no NIS
        was_initialized = ukf.is_initialized
        try:
            used = ukf.process_measurement(measurement)
        except FilterError as e:
            logger.error(f"Skipping measurement at t={measurement.timestamp}us: {e}")
            skipped += 1
            continue

        sensor = measurement.sensor_type
        nis = None
        if used and was_initialized:
            nis = ukf.nis_lidar if sensor == SensorType.LIDAR else ukf.nis_radar
            nis_monitor.record(sensor, nis)

        state = ukf.state
        row = {
            'timestamp': measurement.timestamp,
            'sensor': sensor.value,
            'px_est': state.px,
            'py_est': state.py,
            'v_est': state.speed,
            'yaw_est': state.yaw,
            'yaw_rate_est': state.yaw_rate,
            'nis': nis if nis is not None else '',
        }
        if measurement.ground_truth is not None:
            gt = measurement.ground_truth
            row.update({'px_gt': gt.px, 'py_gt': gt.py, 'vx_gt': gt.vx, 'vy_gt': gt.vy})
            metrics.update(state.to_cartesian(), gt.to_array(), measurement.timestamp)
        rows.append(row)

    return {
        'filter': ukf,
        'rows': rows,
        'metrics': metrics,
        'nis_monitor': nis_monitor,
        'skipped': skipped,
    }


def report(results: Dict[str, Any]) -> None:
    """Print accuracy and consistency summaries."""
    print("\n=== TRACKING RESULTS ===")
    print(f"Measurements processed: {len(results['rows'])}")
    print(f"Measurements skipped:   {results['skipped']}")

    metrics = results['metrics']
    if len(metrics):
        stats = metrics.get_error_statistics()
        rmse = stats['rmse']
        print(f"RMSE px: {rmse['px']:.4f}  py: {rmse['py']:.4f}  "
              f"vx: {rmse['vx']:.4f}  vy: {rmse['vy']:.4f}")
        print(f"Mean position error: {stats['mean_position_error']:.3f} m")
        print(f"Max position error:  {stats['max_position_error']:.3f} m")
    else:
        print("No ground truth available, RMSE not computed")

    print("\n=== NIS CONSISTENCY ===")
    nis_stats = results['nis_monitor'].get_statistics()
    if not nis_stats:
        print("No sensor updates recorded")
    for sensor, s in nis_stats.items():
        print(f"{sensor:>6}: mean {s['mean']:.2f} (expected {s['expected_mean']}) | "
              f"{s['fraction_above']*100:.1f}% above {s['threshold']:.3f} "
              f"(expected {s['expected_fraction_above']*100:.1f}%) | {s['assessment']}")


def show_plots(results: Dict[str, Any], measurements: Sequence[MeasurementPackage]) -> None:
    """Trajectory comparison and NIS plots."""
    rows = [r for r in results['rows'] if 'px_gt' in r]
    if len(rows) < 2:
        logger.warning("Not enough ground truth to plot the trajectory comparison")
    else:
        ground_truth = np.array([[r['px_gt'], r['py_gt']] for r in rows])
        estimates = np.array([[r['px_est'], r['py_est']] for r in rows])
        plot_tracking_results(ground_truth, estimates, measurements,
                              final_covariance=results['filter'].P)

    if results['nis_monitor'].get_statistics():
        plot_nis(results['nis_monitor'])
    plt.show()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point"""
    parser = argparse.ArgumentParser(description='Lidar + Radar UKF Tracking Demo')
    parser.add_argument('--input', '-i', type=str, default=None,
                        help='Measurement log to process (default: simulated scenario)')
    parser.add_argument('--output', '-o', type=str, default=None,
                        help='Write per-measurement estimates to this TSV file')
    parser.add_argument('--duration', type=float, default=25.0,
                        help='Simulated scenario duration in seconds (default: 25)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Random seed for the simulated scenario')
    parser.add_argument('--std-a', type=float, default=0.30,
                        help='Longitudinal acceleration noise [m/s^2] (default: 0.30)')
    parser.add_argument('--std-yawdd', type=float, default=0.30,
                        help='Yaw acceleration noise [rad/s^2] (default: 0.30)')
    parser.add_argument('--disable-lidar', action='store_true',
                        help='Ignore lidar measurements after initialization')
    parser.add_argument('--disable-radar', action='store_true',
                        help='Ignore radar measurements after initialization')
    parser.add_argument('--no-viz', action='store_true',
                        help='Disable result plots')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    parameters = UKFParameters(
        std_a=args.std_a,
        std_yawdd=args.std_yawdd,
        use_laser=not args.disable_lidar,
        use_radar=not args.disable_radar,
    )

    print("=== Lidar + Radar Tracking with an Unscented Kalman Filter ===")
    if args.input:
        print(f"Measurement log: {args.input}")
        measurements = read_measurement_file(args.input)
    else:
        print(f"Simulated scenario: {args.duration} seconds, seed {args.seed}")
        measurements = simulate_scenario(args.duration, args.seed, parameters)

    if not measurements:
        print("No measurements to process")
        return 1

    results = run_tracking(measurements, parameters)
    report(results)

    if args.output:
        write_estimates(args.output, results['rows'])
        print(f"\nEstimates written to {args.output}")

    if not args.no_viz:
        show_plots(results, measurements)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
