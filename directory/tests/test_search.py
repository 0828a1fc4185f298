"""
End-to-end tests for the directory search.

These tests go through ``/api/search`` with DRF's APIClient and check
the response shape, the store ordering for every sort family, the
post-filter/post-sort stages and the facet histograms.  Failure paths
call the service directly with a failing store or an expired deadline.
"""
from unittest import mock

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APITestCase

from directory.services import search as search_service
from directory.services.search import empty_response, search_healthcare
from directory.services.store import Deadline, DirectoryStore

from .factories import add_reviews, make_department, make_doctor, make_hospital


class _FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class _BrokenStore(DirectoryStore):
    def count(self, model, predicate):
        raise RuntimeError('database unavailable')


class DoctorSearchTests(APITestCase):
    def setUp(self) -> None:
        self.url = reverse('search')
        self.paris = make_hospital('Hôpital Paris Centre', city='Paris')
        # 8 doctors rated at least 4, 7 below
        self.good = []
        for i in range(8):
            doctor = make_doctor(f'Good {i:02d}', hospital=self.paris)
            add_reviews([5, 4] if i % 2 else [4], doctor=doctor)
            self.good.append(doctor)
        self.poor = []
        for i in range(7):
            doctor = make_doctor(f'Poor {i:02d}', hospital=self.paris)
            if i % 2:
                add_reviews([3, 2], doctor=doctor)
            self.poor.append(doctor)

    def test_min_rating_filters_the_page_but_not_the_total(self):
        r = self.client.get(self.url, {
            'type': 'doctor', 'city': 'Paris', 'minRating': '4', 'sortBy': 'rating_high', 'limit': 10,
        })
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['totalCount'], 15)
        doctors = r.data['doctors']
        self.assertEqual(len(doctors), 8)
        self.assertTrue(all(d['avgRating'] >= 4 for d in doctors))
        self.assertEqual({d['id'] for d in doctors}, {d.id for d in self.good})
        ratings = [d['avgRating'] for d in doctors]
        self.assertEqual(ratings, sorted(ratings, reverse=True))

    def test_response_shape(self):
        r = self.client.get(self.url, {'type': 'doctor', 'limit': 1})
        self.assertEqual(set(r.data), {'doctors', 'hospitals', 'departments', 'totalCount', 'facets'})
        self.assertEqual(r.data['hospitals'], [])
        self.assertEqual(r.data['departments'], [])
        self.assertEqual(len(r.data['doctors']), 1)
        item = r.data['doctors'][0]
        for key in ('id', 'name', 'specialization', 'expYears', 'avgRating', 'reviewCount', 'hospital', 'city'):
            self.assertIn(key, item)
        self.assertEqual(item['city'], 'Paris')
        self.assertEqual(item['hospital']['id'], self.paris.id)

    def test_rating_sort_puts_unreviewed_doctors_last(self):
        r = self.client.get(self.url, {'type': 'doctor', 'sortBy': 'rating_high', 'limit': 100})
        doctors = r.data['doctors']
        self.assertEqual(len(doctors), 15)
        self.assertEqual([d['reviewCount'] for d in doctors[-4:]], [0, 0, 0, 0])

    def test_name_sort_is_default_and_pages(self):
        r = self.client.get(self.url, {'type': 'doctor', 'limit': 5, 'page': 2})
        self.assertEqual(r.data['totalCount'], 15)
        self.assertEqual(
            [d['name'] for d in r.data['doctors']],
            ['Good 05', 'Good 06', 'Good 07', 'Poor 00', 'Poor 01'],
        )

    def test_page_past_the_end_is_empty(self):
        r = self.client.get(self.url, {'type': 'doctor', 'page': 9})
        self.assertEqual(r.data['doctors'], [])
        self.assertEqual(r.data['totalCount'], 15)

    def test_unknown_filters_and_sort_keys_are_ignored(self):
        r = self.client.get(self.url, {'type': 'doctor', 'sortBy': 'doctors_high', 'foo': 'bar', 'limit': 3})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual([d['name'] for d in r.data['doctors']], ['Good 00', 'Good 01', 'Good 02'])

    def test_unusable_pagination_falls_back_to_defaults(self):
        r = self.client.get(self.url, {'type': 'doctor', 'limit': 'lots', 'page': '0'})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(r.data['totalCount'], 15)
        self.assertEqual(len(r.data['doctors']), 10)
        self.assertEqual(r.data['doctors'][0]['name'], 'Good 00')

        r = self.client.get(self.url, {'type': 'doctor', 'limit': '-5', 'page': 'two'})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        self.assertEqual(len(r.data['doctors']), 10)

    def test_unknown_type_is_rejected(self):
        r = self.client.get(self.url, {'type': 'clinic'})
        self.assertEqual(r.status_code, status.HTTP_400_BAD_REQUEST)


class DoctorSortTests(APITestCase):
    def setUp(self) -> None:
        self.url = reverse('search')
        self.a = make_doctor('Alpha', experience='5 ans', fee='15000')
        self.b = make_doctor('bravo', experience="20 ans d'expérience", fee=None)
        self.c = make_doctor('Charlie', experience='n/a', fee='5000')
        self.d = make_doctor('Delta', experience='12 ans', fee='25000')

    def _ids(self, sort_key):
        r = self.client.get(self.url, {'type': 'doctor', 'sortBy': sort_key})
        self.assertEqual(r.status_code, status.HTTP_200_OK)
        return [d['id'] for d in r.data['doctors']]

    def test_name_sort_ignores_case(self):
        self.assertEqual(self._ids('name_az'), [self.a.id, self.b.id, self.c.id, self.d.id])

    def test_name_sort_uses_the_displayed_name(self):
        nameless = make_doctor('')
        r = self.client.get(self.url, {'type': 'doctor', 'sortBy': 'name_az'})
        names = [d['name'] for d in r.data['doctors']]
        self.assertEqual(names, ['Alpha', 'bravo', 'Charlie', 'Delta', nameless.user.username])
        self.assertEqual(names, sorted(names, key=str.lower))

    def test_price_sorts_put_missing_fees_last(self):
        self.assertEqual(self._ids('price_low'), [self.c.id, self.a.id, self.d.id, self.b.id])
        self.assertEqual(self._ids('price_high'), [self.d.id, self.a.id, self.c.id, self.b.id])

    def test_newest_first(self):
        self.assertEqual(self._ids('newest'), [self.d.id, self.c.id, self.b.id, self.a.id])

    def test_experience_sort_uses_parsed_years(self):
        r = self.client.get(self.url, {'type': 'doctor', 'sortBy': 'experience_high'})
        self.assertEqual([d['expYears'] for d in r.data['doctors']], [20, 12, 5, 0])
        self.assertEqual(r.data['doctors'][0]['id'], self.b.id)

    def test_experience_ties_keep_recency_order(self):
        e = make_doctor('Echo', experience='12 years')
        self.assertEqual(self._ids('experience_high'), [self.b.id, e.id, self.d.id, self.a.id, self.c.id])

    def test_reviews_sort(self):
        add_reviews([1, 1, 1], doctor=self.c)
        add_reviews([5], doctor=self.a)
        self.assertEqual(self._ids('reviews_high')[:2], [self.c.id, self.a.id])


class HospitalSearchTests(APITestCase):
    def setUp(self) -> None:
        self.url = reverse('search')
        self.h1 = make_hospital('Hôpital du Point G', city='Bamako')
        self.h2 = make_hospital('Clinique Pasteur', city='Bamako')
        self.h3 = make_hospital('Hôpital de Sikasso', city='Sikasso')
        make_hospital('Clinique en attente', city='Kayes', verified=False)
        for i in range(3):
            make_doctor(f'H1 doctor {i}', hospital=self.h1)
        make_doctor('H2 doctor', hospital=self.h2)
        make_doctor('H2 unverified 1', hospital=self.h2, verified=False)
        make_doctor('H2 unverified 2', hospital=self.h2, verified=False)
        make_doctor('H3 doctor 1', hospital=self.h3)
        make_doctor('H3 doctor 2', hospital=self.h3)
        make_department(self.h2, 'Cardiologie')
        make_department(self.h2, 'Pédiatrie')
        make_department(self.h3, 'Neurologie')

    def test_doctors_high_counts_verified_doctors_only(self):
        r = self.client.get(self.url, {'type': 'hospital', 'sortBy': 'doctors_high'})
        self.assertEqual(r.data['totalCount'], 3)
        hospitals = r.data['hospitals']
        self.assertEqual([h['id'] for h in hospitals], [self.h1.id, self.h3.id, self.h2.id])
        self.assertEqual([h['doctorCount'] for h in hospitals], [3, 2, 1])
        self.assertEqual(r.data['doctors'], [])

    def test_departments_high(self):
        r = self.client.get(self.url, {'type': 'hospital', 'sortBy': 'departments_high'})
        hospitals = r.data['hospitals']
        self.assertEqual([h['id'] for h in hospitals], [self.h2.id, self.h3.id, self.h1.id])
        self.assertEqual([h['departmentCount'] for h in hospitals], [2, 1, 0])

    def test_hospital_rating(self):
        add_reviews([5, 4], hospital=self.h3)
        add_reviews([2], hospital=self.h1)
        r = self.client.get(self.url, {'type': 'hospital', 'sortBy': 'rating_high'})
        hospitals = r.data['hospitals']
        self.assertEqual([h['id'] for h in hospitals], [self.h3.id, self.h1.id, self.h2.id])
        self.assertEqual(hospitals[0]['avgRating'], 4.5)
        self.assertEqual(hospitals[0]['reviewCount'], 2)

    def test_query_with_ampersand_matches_the_stored_name(self):
        fils = make_hospital('Clinique Diallo & Fils', city='Kayes')
        r = self.client.get(self.url, {'type': 'hospital', 'query': 'Diallo & Fils'})
        self.assertEqual(r.data['totalCount'], 1)
        self.assertEqual([h['id'] for h in r.data['hospitals']], [fils.id])

        r = self.client.get(self.url, {'type': 'hospital', 'query': '<b>Diallo</b> & Fils'})
        self.assertEqual([h['id'] for h in r.data['hospitals']], [fils.id])

    def test_city_filter_and_doctor_only_filters_ignored(self):
        r = self.client.get(self.url, {'type': 'hospital', 'city': 'bamako', 'specialization': 'x'})
        self.assertEqual(r.data['totalCount'], 2)
        self.assertEqual([h['name'] for h in r.data['hospitals']], ['Clinique Pasteur', 'Hôpital du Point G'])

    def test_only_city_facet_outside_doctor_search(self):
        r = self.client.get(self.url, {'type': 'hospital'})
        facets = r.data['facets']
        self.assertEqual(facets['specializations'], [])
        self.assertEqual(facets['genders'], [])
        self.assertEqual(facets['experienceLevels'], [])
        self.assertEqual(facets['cities'], [{'name': 'Bamako', 'count': 2}, {'name': 'Sikasso', 'count': 1}])


class DepartmentSearchTests(APITestCase):
    def setUp(self) -> None:
        self.url = reverse('search')
        lyon = make_hospital('Hôpital Lyon Sud', city='Lyon')
        paris = make_hospital('Hôpital Paris Nord', city='Paris')
        hidden = make_hospital('Clinique Lyon Est', city='Lyon', verified=False)
        self.cardio = make_department(lyon, 'Cardiologie')
        self.neuro = make_department(lyon, 'Neurologie')
        make_department(paris, 'Cardiologie')
        make_department(hidden, 'Dermatologie')
        doctor = make_doctor('Lyon cardiologist', hospital=lyon, department=self.cardio)
        add_reviews([5, 3], doctor=doctor)
        make_doctor('Hidden', hospital=lyon, department=self.cardio, verified=False)

    def test_city_filter_requires_verified_hospital(self):
        r = self.client.get(self.url, {'type': 'department', 'city': 'Lyon'})
        self.assertEqual(r.data['totalCount'], 2)
        departments = r.data['departments']
        self.assertEqual([d['id'] for d in departments], [self.cardio.id, self.neuro.id])
        self.assertTrue(all(d['hospital']['city'] == 'Lyon' for d in departments))

    def test_department_rating_and_doctor_count(self):
        r = self.client.get(self.url, {'type': 'department', 'city': 'Lyon', 'sortBy': 'doctors_high'})
        first = r.data['departments'][0]
        self.assertEqual(first['id'], self.cardio.id)
        self.assertEqual(first['doctorCount'], 1)
        self.assertEqual(first['avgRating'], 4.0)
        self.assertEqual(first['reviewCount'], 2)


class FacetTests(APITestCase):
    def setUp(self) -> None:
        bamako = make_hospital('Hôpital du Point G', city='Bamako')
        segou = make_hospital('Hôpital de Ségou', city='Ségou')
        make_hospital('Clinique en attente', city='Kayes', verified=False)
        make_doctor('A', hospital=bamako, specialization='Cardiologue', gender='MALE')
        make_doctor('B', hospital=bamako, specialization='Pédiatre', gender='FEMALE')
        make_doctor('C', hospital=segou, specialization='Pédiatre', gender='FEMALE')
        make_doctor('D', hospital=segou, specialization='Dermatologue', verified=False, gender='MALE')
        make_doctor('E', hospital=segou, specialization='Neurologue', is_approved=False)

    def test_doctor_facets(self):
        r = self.client.get(reverse('search'), {'type': 'doctor', 'specialization': 'Cardiologue'})
        facets = r.data['facets']
        # the baseline ignores the caller's filters
        self.assertEqual(facets['specializations'], [
            {'name': 'Pédiatre', 'count': 2},
            {'name': 'Cardiologue', 'count': 1},
        ])
        self.assertEqual(facets['cities'], [{'name': 'Bamako', 'count': 1}, {'name': 'Ségou', 'count': 1}])
        self.assertEqual(facets['genders'], [{'value': 'FEMALE', 'count': 2}, {'value': 'MALE', 'count': 1}])
        self.assertEqual(
            facets['experienceLevels'],
            [{'value': '1-5', 'count': 0}, {'value': '5-10', 'count': 0}, {'value': '10+', 'count': 0}],
        )
        self.assertEqual(facets['ratings'], [])
        for key in ('specializations', 'cities', 'genders'):
            self.assertTrue(all(b['count'] > 0 for b in facets[key]))


class FailSoftTests(APITestCase):
    def setUp(self) -> None:
        make_doctor('Someone')

    def test_store_failure_returns_empty_response(self):
        result = search_healthcare({'type': 'doctor'}, store=_BrokenStore())
        self.assertEqual(result, empty_response())

    def test_expired_deadline_skips_every_query(self):
        clock = _FakeClock()
        deadline = Deadline(1.0, clock=clock)
        clock.now = 2.0
        with self.assertNumQueries(0):
            result = search_healthcare({'type': 'doctor'}, store=DirectoryStore(deadline))
        self.assertEqual(result, empty_response())

    def test_unknown_type_is_fail_soft_in_the_service(self):
        self.assertEqual(search_healthcare({'type': 'clinic'}), empty_response())

    def test_unknown_type_is_not_logged_as_an_error(self):
        with mock.patch.object(search_service.logger, 'exception') as logged_error, \
                mock.patch.object(search_service.logger, 'debug') as logged_debug:
            self.assertEqual(search_healthcare({'type': 'clinic'}), empty_response())
        logged_error.assert_not_called()
        logged_debug.assert_called_once()

    def test_unexpired_deadline_answers(self):
        result = search_healthcare({'type': 'doctor'}, store=DirectoryStore(Deadline(60)))
        self.assertEqual(result['totalCount'], 1)
