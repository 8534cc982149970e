import pytest
import numpy as np
import sys
import os

# Add the src directory to Python path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from ukf_tracking.exceptions import MeasurementShapeError, UnsupportedSensorError
from ukf_tracking.sensors import (
    GroundTruth,
    LidarSensor,
    MeasurementPackage,
    RadarSensor,
    SensorType,
    read_measurement_file,
    simulate_measurements,
    write_estimates,
)
from ukf_tracking.sensors.stream import ESTIMATE_COLUMNS, parse_measurement_line
from ukf_tracking.simulation import straight_line


class TestMeasurementPackage:
    """Test the measurement record"""

    def test_sensor_tags(self):
        """Test sensor types resolve from file tags and names"""
        assert SensorType.from_tag('L') == SensorType.LIDAR
        assert SensorType.from_tag('laser') == SensorType.LIDAR
        assert SensorType.from_tag('R') == SensorType.RADAR
        assert SensorType.from_tag(SensorType.RADAR) == SensorType.RADAR

        with pytest.raises(UnsupportedSensorError):
            SensorType.from_tag('sonar')

    def test_package_normalization(self):
        """Test raw values become a float array and the tag is resolved"""
        m = MeasurementPackage('L', 1500000, [1, 2])

        assert m.sensor_type == SensorType.LIDAR
        assert m.raw_measurements.dtype == np.float64
        assert m.timestamp_seconds == pytest.approx(1.5)

    def test_wrong_size_rejected(self):
        """Test the measurement size must match the sensor"""
        with pytest.raises(MeasurementShapeError):
            MeasurementPackage(SensorType.RADAR, 0, [1.0, 2.0])

    def test_fractional_timestamp_rejected(self):
        """Test timestamps must be whole microseconds"""
        with pytest.raises(ValueError):
            MeasurementPackage(SensorType.LIDAR, 1.5, [1.0, 2.0])

    def test_ground_truth_array(self):
        """Test ground truth exposes the Cartesian evaluation vector"""
        gt = GroundTruth(1.0, 2.0, 3.0, 4.0, yaw=0.9)

        np.testing.assert_allclose(gt.to_array(), [1.0, 2.0, 3.0, 4.0])


class TestLidarSensor:
    """Test lidar sensor simulation"""

    def test_lidar_initialization(self):
        """Test lidar sensor stores its configuration"""
        lidar = LidarSensor(noise_std_x=0.1, noise_std_y=0.2, dropout_prob=0.05)

        assert lidar.noise_std_x == 0.1
        np.testing.assert_allclose(lidar.get_measurement_covariance(), np.diag([0.01, 0.04]))
        assert lidar.get_sensor_info()['sensor_type'] == 'lidar'

    def test_invalid_configuration(self):
        """Test negative noise and invalid probabilities are rejected"""
        with pytest.raises(ValueError):
            LidarSensor(noise_std_x=-0.1)
        with pytest.raises(ValueError):
            LidarSensor(dropout_prob=1.5)

    def test_noiseless_measurement(self):
        """Test zero noise reproduces the true position"""
        lidar = LidarSensor(noise_std_x=0.0, noise_std_y=0.0)

        m = lidar.get_measurement(np.array([3.0, 4.0, 1.0, 0.0, 0.0]), 100)

        assert m.sensor_type == SensorType.LIDAR
        assert m.timestamp == 100
        np.testing.assert_allclose(m.raw_measurements, [3.0, 4.0])

    def test_lidar_noise_characteristics(self):
        """Test lidar noise has the configured standard deviation"""
        lidar = LidarSensor(noise_std_x=0.15, noise_std_y=0.3, rng=np.random.default_rng(1))
        state = np.array([10.0, -5.0, 0.0, 0.0, 0.0])

        noise = np.array([lidar.get_measurement(state, 0).raw_measurements - state[0:2]
                          for _ in range(2000)])

        assert np.abs(np.mean(noise[:, 0])) < 0.02
        assert np.abs(np.std(noise[:, 0]) - 0.15) < 0.015
        assert np.abs(np.std(noise[:, 1]) - 0.3) < 0.03

    def test_lidar_dropout_behavior(self):
        """Test dropouts occur at the expected rate"""
        lidar = LidarSensor(dropout_prob=0.3, rng=np.random.default_rng(2))
        state = np.zeros(5)

        received = [lidar.get_measurement(state, 0) is not None for _ in range(2000)]

        assert 0.65 < np.mean(received) < 0.75


class TestRadarSensor:
    """Test radar sensor simulation"""

    def test_ideal_measurement(self):
        """Test noise-free range, bearing and range rate"""
        z = RadarSensor.ideal_measurement(np.array([3.0, 4.0, 5.0, 0.0, 0.0]))

        np.testing.assert_allclose(z, [5.0, np.arctan2(4.0, 3.0), 3.0])

    def test_ideal_measurement_at_origin(self):
        """Test the range rate is undefined at the antenna"""
        with pytest.raises(ValueError):
            RadarSensor.ideal_measurement(np.zeros(5))

    def test_blind_zone(self):
        """Test targets inside the minimum range are not detected"""
        radar = RadarSensor(min_range=0.5)

        assert radar.get_measurement(np.array([0.1, 0.1, 1.0, 0.0, 0.0]), 0) is None

    def test_bearing_wrapped(self):
        """Test noisy bearings behind the sensor stay in (−π, π]"""
        radar = RadarSensor(noise_std_bearing=0.1, rng=np.random.default_rng(3))
        state = np.array([-10.0, 0.0, 1.0, 0.0, 0.0])

        bearings = np.array([radar.get_measurement(state, 0).raw_measurements[1]
                             for _ in range(500)])

        assert np.all(bearings > -np.pi) and np.all(bearings <= np.pi)
        assert np.any(bearings < 0) and np.any(bearings > 0)

    def test_radar_noise_characteristics(self):
        """Test radar noise has the configured standard deviations"""
        radar = RadarSensor(rng=np.random.default_rng(4))
        state = np.array([20.0, 5.0, 3.0, 0.2, 0.0])
        ideal = RadarSensor.ideal_measurement(state)

        noise = np.array([radar.get_measurement(state, 0).raw_measurements - ideal
                          for _ in range(2000)])

        np.testing.assert_allclose(np.std(noise, axis=0), [0.3, 0.03, 0.3], rtol=0.1)
        np.testing.assert_allclose(radar.get_measurement_covariance(),
                                   np.diag([0.09, 0.0009, 0.09]))


class TestMeasurementLog:
    """Test reading and writing measurement logs"""

    def test_parse_lidar_line_with_ground_truth(self):
        """Test a lidar line with ground truth columns"""
        m = parse_measurement_line("L\t3.12\t0.62\t1477010443000000\t3.1\t0.6\t5.2\t0.01\t0.002\t0.03\n")

        assert m.sensor_type == SensorType.LIDAR
        assert m.timestamp == 1477010443000000
        np.testing.assert_allclose(m.raw_measurements, [3.12, 0.62])
        assert m.ground_truth.vx == pytest.approx(5.2)
        assert m.ground_truth.yaw_rate == pytest.approx(0.03)

    def test_parse_radar_line_without_ground_truth(self):
        """Test a radar line without ground truth"""
        m = parse_measurement_line("R 1.01 0.05 3.2 50000")

        assert m.sensor_type == SensorType.RADAR
        np.testing.assert_allclose(m.raw_measurements, [1.01, 0.05, 3.2])
        assert m.ground_truth is None

    def test_blank_and_comment_lines(self):
        """Test blank and comment lines are skipped"""
        assert parse_measurement_line("   \n") is None
        assert parse_measurement_line("# sensor px py timestamp") is None

    def test_malformed_lines(self):
        """Test unknown tags and truncated or non-numeric lines raise"""
        with pytest.raises(UnsupportedSensorError):
            parse_measurement_line("X 1.0 2.0 100")
        with pytest.raises(ValueError):
            parse_measurement_line("L 1.0 100")
        with pytest.raises(ValueError):
            parse_measurement_line("R 1.0 abc 2.0 100")

    def test_read_file(self, tmp_path):
        """Test a whole log is read in order"""
        path = tmp_path / "measurements.txt"
        path.write_text("# demo log\n"
                        "L 0.3 0.6 0\n"
                        "R 1.0 0.5 0.1 50000\n"
                        "\n"
                        "L 0.4 0.6 100000\n")

        measurements = read_measurement_file(path)

        assert [m.timestamp for m in measurements] == [0, 50000, 100000]
        assert [m.sensor_type for m in measurements] == [SensorType.LIDAR, SensorType.RADAR,
                                                         SensorType.LIDAR]

    def test_read_file_reports_line_number(self, tmp_path):
        """Test parse errors name the offending line"""
        path = tmp_path / "broken.txt"
        path.write_text("L 0.3 0.6 0\nL 0.3 oops 50000\n")

        with pytest.raises(ValueError, match=":2:"):
            read_measurement_file(path)

    def test_write_estimates(self, tmp_path):
        """Test estimates are written as a tab-separated table"""
        path = tmp_path / "estimates.tsv"
        rows = [{'timestamp': 0, 'sensor': 'lidar', 'px_est': 1.0, 'py_est': 2.0},
                {'timestamp': 50000, 'sensor': 'radar', 'px_est': 1.1, 'py_est': 2.1, 'nis': 0.5}]

        count = write_estimates(path, rows)

        lines = path.read_text().splitlines()
        assert count == 2
        assert lines[0].split('\t') == ESTIMATE_COLUMNS
        assert lines[2].split('\t')[:3] == ['50000', 'radar', '1.1']


class TestSimulatedStream:
    """Test interleaved sensor streams"""

    def test_sensors_alternate(self):
        """Test sensors take turns on consecutive samples"""
        trajectory = straight_line(speed=2.0, yaw=0.0, duration=1.0, initial_position=(5.0, 1.0))
        lidar = LidarSensor(rng=np.random.default_rng(5))
        radar = RadarSensor(rng=np.random.default_rng(6))

        measurements = simulate_measurements(trajectory, [lidar, radar])

        assert len(measurements) == len(trajectory)
        assert measurements[0].sensor_type == SensorType.LIDAR
        assert measurements[1].sensor_type == SensorType.RADAR
        timestamps = [m.timestamp for m in measurements]
        assert timestamps == sorted(timestamps)
        assert timestamps[1] == 50000
        assert measurements[0].ground_truth.px == pytest.approx(5.0)

    def test_dropouts_are_absent(self):
        """Test dropped measurements do not appear in the stream"""
        trajectory = straight_line(speed=2.0, yaw=0.0, duration=1.0, initial_position=(5.0, 1.0))

        measurements = simulate_measurements(trajectory, [LidarSensor(dropout_prob=1.0)])

        assert measurements == []

    def test_requires_sensor(self):
        """Test at least one sensor is needed"""
        with pytest.raises(ValueError):
            simulate_measurements(straight_line(1.0, 0.0, 1.0), [])
