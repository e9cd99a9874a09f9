import unittest

import numpy as np

from orrery.config import settings
from orrery.models.body import BodyRole, make_body, resolve_bodies
from orrery.models.orbital_elements import OrbitalElements
from orrery.physics.blend import blend_elements, interpolate_angle
from orrery.physics.frames import to_visualization_frame

S = settings.VISUALIZATION_SCALE


class TestVisualizationFrame(unittest.TestCase):

    def setUp(self):
        self.earth_helio = np.array([1.0e8, 2.0e8, 3.0e6])

    def test_reference_body_is_always_origin(self):
        for pos in ([0, 0, 0], [5e8, -3e8, 1e7], [1, 2, 3]):
            out = to_visualization_frame("Earth", pos, self.earth_helio)
            np.testing.assert_array_equal(out, [0.0, 0.0, 0.0])

    def test_star_sits_opposite_reference_on_horizontal_plane(self):
        out = to_visualization_frame("Sun", [0, 0, 0], self.earth_helio)
        np.testing.assert_allclose(out, [-1.0e8 * S, 0.0, -2.0e8 * S])

    def test_star_ignores_its_own_position(self):
        a = to_visualization_frame("Sun", [9e9, 9e9, 9e9], self.earth_helio)
        b = to_visualization_frame("Sun", [0, 0, 0], self.earth_helio)
        np.testing.assert_array_equal(a, b)

    def test_inner_planet_geocentric_with_axis_swap(self):
        mars = np.array([2.0e8, 1.0e8, 5.0e6])
        out = to_visualization_frame("Mars", mars, self.earth_helio)
        geo = (mars - self.earth_helio) * S
        np.testing.assert_allclose(out, [geo[0], geo[2], geo[1]])

    def test_outer_planet_compressed(self):
        jupiter = np.array([7.0e8, 1.0e8, 1.0e7])
        out = to_visualization_frame("Jupiter", jupiter, self.earth_helio)
        geo = (jupiter - self.earth_helio) * S / 1.7
        np.testing.assert_allclose(out, [geo[0], geo[2], geo[1]])

    def test_unlisted_body_uses_unit_correction(self):
        body = make_body("Pluto", "999")
        self.assertEqual(body.correction, 1.0)
        self.assertIs(body.role, BodyRole.ORBITING)
        pos = np.array([4e9, 1e9, 2e8])
        out = to_visualization_frame(body, pos, self.earth_helio)
        geo = (pos - self.earth_helio) * S
        np.testing.assert_allclose(out, [geo[0], geo[2], geo[1]])

    def test_resolved_bodies(self):
        bodies = resolve_bodies()
        self.assertEqual(len(bodies), 9)
        roles = {b.name: b.role for b in bodies}
        self.assertIs(roles["Earth"], BodyRole.REFERENCE)
        self.assertIs(roles["Sun"], BodyRole.STAR)
        self.assertEqual([b.correction for b in bodies if b.name == "Neptune"], [5.0])

    def test_two_reference_bodies_rejected(self):
        with self.assertRaises(ValueError):
            resolve_bodies([("Earth", "399", 1, "blue"), ("Earth", "399", 1, "blue")])


class TestBlendElements(unittest.TestCase):

    def setUp(self):
        self.x = OrbitalElements(a=1.5e8, e=0.0167, i=0.004, om=174.6, w=289.0, M0=357.4, T=365.25)

    def test_blend_with_itself_is_identity(self):
        for t in (0.0, 0.25, 0.5, 1.0):
            self.assertEqual(blend_elements(self.x, self.x, t), self.x)

    def test_blend_identity_with_unnormalised_angles(self):
        x = OrbitalElements(a=1.0, e=0.1, i=-5.0, om=-10.0, w=360.0, M0=725.0, T=10.0)
        for t in (0.0, 0.5, 1.0):
            self.assertEqual(blend_elements(x, x, t), x)
        self.assertEqual(interpolate_angle(-10.0, 350.0, 0.5), -10.0)

    def test_mean_anomaly_wraps_through_zero(self):
        a = OrbitalElements(a=1, e=0, i=0, om=0, w=0, M0=350.0, T=1)
        b = OrbitalElements(a=1, e=0, i=0, om=0, w=0, M0=10.0, T=1)
        m0 = blend_elements(a, b, 0.5).M0
        self.assertLess(min(m0, 360.0 - m0), 1e-9)

    def test_linear_fields(self):
        a = OrbitalElements(a=1.0, e=0.1, i=0, om=0, w=0, M0=0, T=100.0)
        b = OrbitalElements(a=3.0, e=0.3, i=0, om=0, w=0, M0=0, T=200.0)
        out = blend_elements(a, b, 0.25)
        self.assertAlmostEqual(out.a, 1.5)
        self.assertAlmostEqual(out.e, 0.15)
        self.assertAlmostEqual(out.T, 125.0)

    def test_interpolate_angle_shortest_arc(self):
        self.assertAlmostEqual(interpolate_angle(10.0, 350.0, 0.5), 0.0)
        self.assertAlmostEqual(interpolate_angle(10.0, 350.0, 1.0), 350.0)
        self.assertAlmostEqual(interpolate_angle(90.0, 180.0, 0.5), 135.0)
        self.assertAlmostEqual(interpolate_angle(0.0, 180.0, 0.5), 90.0)

    def test_interpolate_angle_endpoints(self):
        self.assertAlmostEqual(interpolate_angle(350.0, 10.0, 0.0), 350.0)
        self.assertAlmostEqual(interpolate_angle(350.0, 10.0, 1.0), 10.0)


if __name__ == '__main__':
    unittest.main()
