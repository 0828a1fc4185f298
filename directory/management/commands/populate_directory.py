"""
Management command to populate the directory with demo data.

Creates hospitals across Malian cities, their departments, doctors with
French free-text experience and a spread of patient reviews, so that
every search sort key and facet has something to work on.
"""
import random
from decimal import Decimal

from django.contrib.auth.hashers import make_password
from django.core.management.base import BaseCommand
from django.db import transaction

from directory.models import Department, Doctor, Hospital, Review, User, UserProfile

CITIES = ['Bamako', 'Sikasso', 'Ségou', 'Mopti', 'Kayes', 'Koutiala', 'Gao']

FIRST_NAMES = {
    'MALE': ['Amadou', 'Moussa', 'Ibrahim', 'Seydou', 'Oumar', 'Mamadou', 'Modibo', 'Boubacar', 'Cheick', 'Adama'],
    'FEMALE': ['Aminata', 'Fatoumata', 'Kadiatou', 'Mariam', 'Oumou', 'Rokia', 'Fanta', 'Hawa', 'Awa', 'Bintou'],
}
LAST_NAMES = ['Traoré', 'Diarra', 'Coulibaly', 'Keita', 'Koné', 'Sangaré', 'Touré', 'Diallo', 'Cissé', 'Sissoko']

# department name -> specialization of the doctors working in it
DEPARTMENTS = {
    'Cardiologie': 'Cardiologue',
    'Pédiatrie': 'Pédiatre',
    'Gynécologie': 'Gynécologue',
    'Dermatologie': 'Dermatologue',
    'Neurologie': 'Neurologue',
    'Médecine générale': 'Médecin généraliste',
}

HOSPITAL_TEMPLATES = [
    'Hôpital du Point G',
    'Hôpital Gabriel Touré',
    'Clinique Pasteur',
    'Polyclinique Kabala',
    'Centre de Santé de Référence',
    'Hôpital Régional',
    'Clinique Les Etoiles',
    'Clinique Farako',
]

REVIEW_TITLES = {
    5: 'Excellent accueil',
    4: 'Très bon suivi',
    3: 'Correct',
    2: 'Attente trop longue',
    1: 'Déçu',
}


class Command(BaseCommand):
    help = 'Populate the directory with demo hospitals, doctors and reviews'

    def add_arguments(self, parser):
        parser.add_argument('--hospitals', type=int, default=8)
        parser.add_argument('--doctors-per-department', type=int, default=2)
        parser.add_argument('--patients', type=int, default=20)
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data')
        parser.add_argument('--flush', action='store_true', help='Delete existing directory rows first')

    def handle(self, *args, **options):
        self.rng = random.Random(options['seed'])
        with transaction.atomic():
            if options['flush']:
                self.flush()
            hospitals = self.create_hospitals(options['hospitals'])
            departments = self.create_departments(hospitals)
            doctors = self.create_doctors(departments, options['doctors_per_department'])
            patients = self.create_patients(options['patients'])
            reviews = self.create_reviews(patients, doctors, hospitals)
        self.stdout.write(self.style.SUCCESS(
            f'Directory populated: {len(hospitals)} hospitals, {len(departments)} departments, '
            f'{len(doctors)} doctors, {reviews} reviews'
        ))

    def flush(self):
        Review.objects.all().delete()
        Doctor.objects.all().delete()
        Department.objects.all().delete()
        Hospital.objects.all().delete()
        User.objects.filter(is_superuser=False).delete()
        self.stdout.write('Existing directory data deleted')

    def _person(self):
        gender = self.rng.choice(['MALE', 'FEMALE'])
        first = self.rng.choice(FIRST_NAMES[gender])
        last = self.rng.choice(LAST_NAMES)
        return gender, first, last

    def _user(self, username, role, first, last, gender, city):
        user, created = User.objects.get_or_create(
            username=username,
            defaults={
                'password': make_password('123456'),
                'role': role,
                'first_name': first,
                'last_name': last,
                'name': f'{first} {last}',
                'email': f'{username}@example.ml',
                'is_approved': True,
            },
        )
        UserProfile.objects.get_or_create(user=user, defaults={'city': city, 'gender': gender})
        return user

    def create_hospitals(self, count):
        hospitals = []
        for i in range(count):
            city = CITIES[i % len(CITIES)]
            name = f'{HOSPITAL_TEMPLATES[i % len(HOSPITAL_TEMPLATES)]} de {city}'
            hospital, created = Hospital.objects.get_or_create(
                name=name,
                defaults={
                    'city': city,
                    'description': f'Établissement de santé à {city}',
                    'address': f'Rue {self.rng.randint(1, 400)}, {city}',
                    'phone': f'+223{self.rng.randint(65, 79)}{self.rng.randint(0, 9999999):07d}',
                    # one hospital in four awaits verification
                    'is_verified': i % 4 != 3,
                },
            )
            hospitals.append(hospital)
            self.stdout.write(f'Hospital: {hospital.name}')
        return hospitals

    def create_departments(self, hospitals):
        departments = []
        names = list(DEPARTMENTS)
        for hospital in hospitals:
            for name in self.rng.sample(names, self.rng.randint(2, len(names))):
                department, created = Department.objects.get_or_create(
                    hospital=hospital, name=name, defaults={'description': f'Service de {name.lower()}'}
                )
                departments.append(department)
        return departments

    def create_doctors(self, departments, per_department):
        doctors = []
        for department in departments:
            specialization = DEPARTMENTS[department.name]
            for n in range(per_department):
                gender, first, last = self._person()
                user = self._user(
                    f'dr_{department.id}_{n}', 'doctor', first, last, gender, department.hospital.city
                )
                years = self.rng.randint(1, 30)
                doctor, created = Doctor.objects.get_or_create(
                    user=user,
                    defaults={
                        'hospital': department.hospital,
                        'department': department,
                        'specialization': specialization,
                        'license_number': f'ML-{department.id:03d}-{n:03d}',
                        'experience': f"{years} ans d'expérience en {department.name.lower()}",
                        'education': 'Faculté de Médecine de Bamako',
                        'consultation_fee': Decimal(self.rng.choice([5000, 7500, 10000, 15000, 25000])),
                        'is_verified': self.rng.random() < 0.85,
                    },
                )
                doctors.append(doctor)
        self.stdout.write(f'Doctors: {len(doctors)}')
        return doctors

    def create_patients(self, count):
        patients = []
        for i in range(count):
            gender, first, last = self._person()
            patients.append(self._user(f'patient{i + 1}', 'patient', first, last, gender, self.rng.choice(CITIES)))
        return patients

    def create_reviews(self, patients, doctors, hospitals):
        if not patients:
            return 0
        created_count = 0
        targets = [('doctor', d) for d in doctors] + [('hospital', h) for h in hospitals]
        for kind, target in targets:
            # some entities stay without reviews so rating sorts see zeros
            for _ in range(self.rng.choice([0, 0, 1, 2, 3, 5])):
                rating = self.rng.choices([1, 2, 3, 4, 5], weights=[1, 1, 2, 4, 4])[0]
                Review.objects.create(
                    author=self.rng.choice(patients),
                    rating=rating,
                    title=REVIEW_TITLES[rating],
                    content='',
                    status=self.rng.choice(['APPROVED', 'APPROVED', 'PENDING']),
                    **{kind: target},
                )
                created_count += 1
        return created_count
