from django.test import SimpleTestCase

from blood.services.matching import Location, ProximityTier, haversine_km, proximity_key

REQUEST = Location(city="Dhaka", area="Mirpur", latitude=23.82235, longitude=90.365417)


class HaversineTests(SimpleTestCase):
    def test_one_degree_of_latitude(self):
        self.assertAlmostEqual(haversine_km(0, 0, 1, 0), 111.195, places=2)

    def test_zero_distance(self):
        self.assertEqual(haversine_km(23.8, 90.4, 23.8, 90.4), 0.0)

    def test_symmetric(self):
        self.assertAlmostEqual(haversine_km(23.8, 90.4, 22.3, 91.8), haversine_km(22.3, 91.8, 23.8, 90.4))


class ProximityKeyTests(SimpleTestCase):
    def test_same_city_and_area_is_tier_zero(self):
        key = proximity_key(REQUEST, Location(city=" dhaka ", area="MIRPUR"))
        self.assertEqual(key.tier, ProximityTier.SAME_AREA)
        self.assertIsNone(key.distance_km)

    def test_same_city_other_area_is_tier_one(self):
        key = proximity_key(REQUEST, Location(city="Dhaka", area="Gulshan", latitude=23.7925, longitude=90.4078))
        self.assertEqual(key.tier, ProximityTier.SAME_CITY)
        self.assertIsNotNone(key.distance_km)

    def test_other_city_with_coordinates_is_tier_two(self):
        key = proximity_key(REQUEST, Location(city="Gazipur", area="Tongi", latitude=23.9, longitude=90.4))
        self.assertEqual(key.tier, ProximityTier.BY_DISTANCE)
        self.assertGreater(key.distance_km, 0)

    def test_other_city_without_coordinates_is_tier_three(self):
        key = proximity_key(REQUEST, Location(city="Khulna", area="Sonadanga"))
        self.assertEqual(key, (ProximityTier.UNKNOWN, None))

    def test_request_without_coordinates_cannot_use_distance(self):
        request = Location(city="Dhaka", area="Mirpur")
        key = proximity_key(request, Location(city="Gazipur", latitude=23.9, longitude=90.4))
        self.assertEqual(key.tier, ProximityTier.UNKNOWN)

    def test_blank_request_city_never_matches(self):
        key = proximity_key(Location(city="", area=""), Location(city="", area=""))
        self.assertEqual(key.tier, ProximityTier.UNKNOWN)

    def test_blank_areas_on_both_sides_match(self):
        key = proximity_key(Location(city="Dhaka", area=""), Location(city="dhaka", area="  "))
        self.assertEqual(key.tier, ProximityTier.SAME_AREA)

    def test_blank_request_area_against_named_area_is_city_level(self):
        key = proximity_key(Location(city="Dhaka"), Location(city="Dhaka", area="Mirpur"))
        self.assertEqual(key.tier, ProximityTier.SAME_CITY)

    def test_unknown_distance_sorts_after_known(self):
        near = proximity_key(REQUEST, Location(city="Dhaka", area="Gulshan", latitude=23.79, longitude=90.40))
        unknown = proximity_key(REQUEST, Location(city="Dhaka", area="Gulshan"))
        self.assertLess(near.sort_value(), unknown.sort_value())
