from directory.services.derived import RankedRecord
from directory.services.filter_specs import DoctorFilters, HospitalFilters
from directory.services.ranking import (
    apply_post_filter,
    post_sort,
    resolve_ranking_plan,
)


def _record(label, *, avg_rating=0.0, exp_years=0):
    return RankedRecord(instance=label, avg_rating=avg_rating, exp_years=exp_years)


def test_experience_sort_is_a_post_sort():
    plan = resolve_ranking_plan('doctor', 'experience_high')
    assert plan.needs_post_sort
    assert plan.post_sort_key == 'exp_years'
    assert plan.order_by == ('-created_at', '-id')
    assert not plan.annotations


def test_store_only_plans():
    for entity_type, sort_key in [
        ('doctor', 'name_az'),
        ('doctor', 'price_low'),
        ('doctor', 'rating_high'),
        ('hospital', 'doctors_high'),
        ('department', 'newest'),
    ]:
        plan = resolve_ranking_plan(entity_type, sort_key)
        assert not plan.needs_post_sort
        assert plan.post_sort_key is None


def test_aggregate_sorts_annotate():
    assert 'rating_avg' in resolve_ranking_plan('doctor', 'rating_high').annotations
    assert 'review_total' in resolve_ranking_plan('hospital', 'reviews_high').annotations
    assert 'doctor_total' in resolve_ranking_plan('department', 'doctors_high').annotations
    assert 'department_total' in resolve_ranking_plan('hospital', 'departments_high').annotations


def test_unsupported_sort_falls_back_to_name():
    default = resolve_ranking_plan('hospital', 'name_az')
    assert resolve_ranking_plan('hospital', 'price_low') == default
    assert resolve_ranking_plan('hospital', None) == default
    assert resolve_ranking_plan('hospital', 'whatever') == default


def test_post_sort_is_stable_and_descending():
    plan = resolve_ranking_plan('doctor', 'experience_high')
    records = [
        _record('a', exp_years=5),
        _record('b', exp_years=10),
        _record('c', exp_years=5),
        _record('d', exp_years=10),
        _record('e', exp_years=0),
    ]
    assert [r.instance for r in post_sort(records, plan)] == ['b', 'd', 'a', 'c', 'e']


def test_post_sort_keeps_store_order_otherwise():
    plan = resolve_ranking_plan('doctor', 'name_az')
    records = [_record('z', exp_years=1), _record('a', exp_years=30)]
    assert [r.instance for r in post_sort(records, plan)] == ['z', 'a']


def test_min_rating_post_filter():
    records = [_record('a', avg_rating=4.5), _record('b', avg_rating=3.9), _record('c', avg_rating=4.0)]
    kept = apply_post_filter(records, DoctorFilters(min_rating=4.0))
    assert [r.instance for r in kept] == ['a', 'c']


def test_post_filter_without_min_rating():
    records = [_record('a'), _record('b', avg_rating=1.0)]
    assert apply_post_filter(records, DoctorFilters()) == records
    assert apply_post_filter(records, HospitalFilters(query='x')) == records
