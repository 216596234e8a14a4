import os
import shutil
import tempfile
from decimal import Decimal
from unittest import mock

import requests
from django.apps import apps
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import TestCase, override_settings
from django.urls import reverse

from accounts.models import Fee, Finance
from education.exceptions import ValidationError, PersistenceFailure
from education.models import Student
from . import services
from .models import StudentDocument, ExamCard, ResultRecord, Timetable
from .storage import BlobStorage, BucketNotFound, StoredFile, build_object_key

User = get_user_model()

MAX_UPLOAD = 10 * 1024 * 1024


class FakeStorageClient:
    """In-memory stand-in for SupabaseStorageClient"""

    def __init__(self, configured=True, fail_upload=False, fail_signing=False, bucket_exists=True):
        self.configured = configured
        self.fail_upload = fail_upload
        self.fail_signing = fail_signing
        self.bucket_exists = bucket_exists
        self.objects = {}
        self.created_buckets = []

    def is_configured(self):
        return self.configured

    def upload(self, key, content, content_type):
        if self.fail_upload:
            raise requests.exceptions.ConnectionError('storage unreachable')
        if not self.bucket_exists:
            raise BucketNotFound('Bucket not found')
        self.objects[key] = content

    def create_bucket(self, file_size_limit):
        self.created_buckets.append(file_size_limit)
        self.bucket_exists = True

    def create_signed_url(self, key, expires_in):
        if self.fail_signing:
            raise requests.exceptions.HTTPError('signing failed')
        return f"https://storage.test/signed/{key}?expires={expires_in}"

    def public_url(self, key):
        return f"https://storage.test/public/{key}"

    def remove(self, keys):
        for key in keys:
            self.objects.pop(key, None)

    def close(self):
        pass


def make_file(name='card.pdf', size=2048, content_type='application/pdf'):
    return SimpleUploadedFile(name, b'%PDF' + b'0' * (size - 4), content_type=content_type)


class StorageTestMixin:
    def setUp(self):
        super().setUp()
        self.upload_root = tempfile.mkdtemp()
        self.client_stub = FakeStorageClient()
        self.storage = BlobStorage(self.client_stub, self.upload_root, '/uploads/', MAX_UPLOAD, 3600)
        self.config = apps.get_app_config('documents')
        self.saved_storage = self.config.blob_storage
        self.config.blob_storage = self.storage

    def tearDown(self):
        self.config.blob_storage = self.saved_storage
        shutil.rmtree(self.upload_root, ignore_errors=True)
        super().tearDown()

    def local_files(self):
        found = []
        for root, _, files in os.walk(self.upload_root):
            found.extend(os.path.join(root, name) for name in files)
        return found


class BlobStorageTestCase(StorageTestMixin, TestCase):
    def test_object_key(self):
        key = build_object_key('exam-card', 'CS/001/2021', '../../etc/card one.pdf')
        folder, name = key.split('/', 1)
        self.assertEqual(folder, 'exam-card')
        self.assertTrue(name.startswith('CS-001-2021_'))
        self.assertTrue(name.endswith('_card_one.pdf'))
        self.assertNotIn('/', name)

    def test_remote_store(self):
        stored = self.storage.store(make_file(), 'exam-card', 'CS/001/2021')

        self.assertEqual(stored.method, StoredFile.REMOTE)
        self.assertTrue(stored.url.startswith('https://storage.test/signed/exam-card/'))
        self.assertIn(stored.key, self.client_stub.objects)
        self.assertEqual(self.local_files(), [])

    def test_missing_bucket_is_created(self):
        self.client_stub.bucket_exists = False
        stored = self.storage.store(make_file(), 'results', 'CS/001/2021')

        self.assertEqual(stored.method, StoredFile.REMOTE)
        self.assertEqual(self.client_stub.created_buckets, [MAX_UPLOAD])

    def test_public_url_when_signing_fails(self):
        self.client_stub.fail_signing = True
        stored = self.storage.store(make_file(), 'results', 'CS/001/2021')
        self.assertEqual(stored.url, f"https://storage.test/public/{stored.key}")

    def test_falls_back_to_local(self):
        """Test a failing remote service leaves the file on local disk"""
        self.client_stub.fail_upload = True
        with self.assertLogs('documents.storage', level='WARNING'):
            stored = self.storage.store(make_file(), 'exam-card', 'CS/001/2021')

        self.assertEqual(stored.method, StoredFile.LOCAL)
        self.assertTrue(stored.url.startswith('/uploads/exam-card/'))
        self.assertEqual(len(self.local_files()), 1)

    def test_unconfigured_remote_uses_local(self):
        self.client_stub.configured = False
        stored = self.storage.store(make_file(), 'timetable', 'CS/001/2021')
        self.assertEqual(stored.method, StoredFile.LOCAL)
        self.assertEqual(self.client_stub.objects, {})

    def test_empty_file_rejected(self):
        with self.assertRaises(ValidationError):
            self.storage.store(SimpleUploadedFile('empty.pdf', b''), 'results', 'CS/001/2021')

    def test_discard(self):
        remote = self.storage.store(make_file(), 'results', 'CS/001/2021')
        self.storage.discard(remote)
        self.assertEqual(self.client_stub.objects, {})

        self.client_stub.configured = False
        local = self.storage.store(make_file(), 'results', 'CS/001/2021')
        self.storage.discard(local)
        self.assertEqual(self.local_files(), [])

    def test_discard_failure_is_only_logged(self):
        stored = self.storage.store(make_file(), 'results', 'CS/001/2021')
        with mock.patch.object(self.client_stub, 'remove', side_effect=requests.exceptions.Timeout('slow')):
            with self.assertLogs('documents.storage', level='WARNING'):
                self.storage.discard(stored)


class UploadDocumentTestCase(StorageTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.student = Student.objects.create(
            registration_number="CS/001/2021",
            name="Jane Wanjiku",
            course="Computer Science",
            level_of_study="2",
        )

    def test_each_upload_appends_newest_first(self):
        first = services.upload_document(self.storage, "CS/001/2021", make_file('a.pdf'), 'results')
        second = services.upload_document(self.storage, "CS/001/2021", make_file('b.pdf'), 'results')

        documents = services.list_documents("CS/001/2021")
        self.assertEqual([d.pk for d in documents], [second.pk, first.pk])
        self.assertEqual(services.latest_document("CS/001/2021", 'results'), second)
        self.assertIsNone(services.latest_document("CS/001/2021", 'exam-card'))

    def test_local_fallback_recorded(self):
        self.client_stub.fail_upload = True
        document = services.upload_document(self.storage, "CS/001/2021", make_file(), 'fees-structure')

        self.assertEqual(document.storage_method, 'local')
        self.assertTrue(document.file_url.startswith('/uploads/'))

        with override_settings(LOCAL_UPLOAD_ROOT=self.upload_root):
            response = self.client.get(document.file_url)
        self.assertEqual(response.status_code, 200)
        self.assertEqual(b''.join(response.streaming_content), b'%PDF' + b'0' * 2044)

    def test_oversized_file_rejected(self):
        """Test a file over 10 MiB creates neither a row nor a blob"""
        with self.assertRaises(ValidationError) as ctx:
            services.upload_document(self.storage, "CS/001/2021", make_file(size=MAX_UPLOAD + 1), 'results')

        self.assertEqual(ctx.exception.message, 'File too large')
        self.assertFalse(StudentDocument.objects.exists())
        self.assertEqual(self.client_stub.objects, {})
        self.assertEqual(self.local_files(), [])

    def test_upload_validation(self):
        with self.assertRaises(ValidationError):
            services.upload_document(self.storage, " ", make_file(), 'results')
        with self.assertRaises(ValidationError):
            services.upload_document(self.storage, "CS/001/2021", None, 'results')
        with self.assertRaises(ValidationError):
            services.upload_document(self.storage, "CS/001/2021", make_file(), 'transcript')
        with self.assertRaises(ValidationError):
            services.upload_document(self.storage, "CS/001/2021", make_file(size=512), 'exam-card', min_size=1024)
        self.assertEqual(self.client_stub.objects, {})

    def test_long_registration_number_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            services.upload_document(self.storage, "R" * 51, make_file(), 'results')

        self.assertEqual(ctx.exception.message, 'Invalid registration number')
        self.assertEqual(self.client_stub.objects, {})
        self.assertEqual(self.local_files(), [])

        document = services.upload_document(self.storage, "R" * 50, make_file(), 'results')
        self.assertEqual(len(document.registration_number), 50)

    def test_persistence_failure_discards_blob(self):
        with mock.patch.object(StudentDocument.objects, 'create', side_effect=DatabaseError('disk full')):
            with self.assertRaises(PersistenceFailure):
                services.upload_document(self.storage, "CS/001/2021", make_file(), 'results')

        self.assertEqual(self.client_stub.objects, {})
        self.assertFalse(StudentDocument.objects.exists())

    def test_mirror_error_discards_blob(self):
        """Test a non-database error while recording still removes the stored file"""
        def broken_mirror(document):
            raise ValueError('unexpected payload')

        with self.assertRaises(ValueError):
            services.upload_document(self.storage, "CS/001/2021", make_file(), 'results', mirror=broken_mirror)

        self.assertEqual(self.client_stub.objects, {})
        self.assertFalse(StudentDocument.objects.exists())

    def test_mirror_failure_rolls_back_document(self):
        mirror = services.legacy_mirror('exam-card', self.student)
        with mock.patch.object(ExamCard.objects, 'create', side_effect=DatabaseError('locked')):
            with self.assertRaises(PersistenceFailure):
                services.upload_document(self.storage, "CS/001/2021", make_file(), 'exam-card', mirror=mirror)

        self.assertFalse(StudentDocument.objects.exists())
        self.assertEqual(self.client_stub.objects, {})

    def test_exam_card_falls_back_to_legacy_table(self):
        ExamCard.objects.create(student=self.student, file_url='https://files.example.com/old-card.pdf')
        self.assertEqual(services.exam_card_for(self.student)['file_url'], 'https://files.example.com/old-card.pdf')

        document = services.upload_document(self.storage, "CS/001/2021", make_file(), 'exam-card')
        self.assertEqual(services.exam_card_for(self.student)['file_url'], document.file_url)

    def test_upload_student_photo(self):
        photo = SimpleUploadedFile('me.png', b'\x89PNG' + b'0' * 100, content_type='image/png')
        student, document = services.upload_student_photo(self.storage, "CS/001/2021", photo)

        self.assertEqual(document.document_type, 'photo')
        self.assertEqual(student.photo_url, document.file_url)
        self.assertTrue(document.file_url.startswith('https://storage.test/signed/photos/student_CS-001-2021_'))

    def test_photo_type_checked(self):
        photo = SimpleUploadedFile('me.bmp', b'BM' + b'0' * 100, content_type='image/bmp')
        with self.assertRaises(ValidationError):
            services.upload_student_photo(self.storage, "CS/001/2021", photo)
        self.assertEqual(self.client_stub.objects, {})


class DocumentApiTestCase(StorageTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_user(username="registrar", password="adminpass123", is_staff=True)
        self.student = Student.objects.create(
            registration_number="CS/001/2021",
            name="Jane Wanjiku",
            course="Computer Science",
            level_of_study="2",
        )
        self.client.force_login(self.admin)

    def test_exam_card_upload_with_alias(self):
        response = self.client.post(reverse('api_upload_exam_card'), {
            'regNumber': 'CS/001/2021',
            'examCard': make_file(),
        })

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['message'], 'Exam card uploaded successfully')
        self.assertTrue(body['success'])
        self.assertEqual(body['data']['documentType'], 'exam-card')
        self.assertEqual(body['data']['storageMethod'], 'remote')
        self.assertEqual(ExamCard.objects.get(student=self.student).file_url, body['data']['fileUrl'])

    def test_raw_body_exam_card(self):
        url = reverse('api_upload_exam_card_for', args=['CS001']) + '?registration_number=CS/001/2021&filename=card.pdf'
        response = self.client.post(url, data=b'%PDF' + b'0' * 2044, content_type='application/octet-stream')

        self.assertEqual(response.status_code, 201)
        data = response.json()['data']
        self.assertEqual(data['registrationNumber'], 'CS/001/2021')
        self.assertEqual(data['fileName'], 'card.pdf')
        self.assertEqual(data['fileSize'], 2048)
        self.assertEqual(ExamCard.objects.get(student=self.student).file_url, data['fileUrl'])

    def test_raw_body_exam_card_headers(self):
        response = self.client.post(
            reverse('api_upload_exam_card_for', args=['CS001']),
            data=b'%PDF' + b'0' * 2044,
            content_type='application/pdf',
            headers={'x-registration-number': 'CS/001/2021', 'x-filename': 'scan.pdf'},
        )

        self.assertEqual(response.status_code, 201)
        document = StudentDocument.objects.get()
        self.assertEqual((document.registration_number, document.file_name), ('CS/001/2021', 'scan.pdf'))

    def test_raw_body_defaults(self):
        """Test the path segment and a default name are used when nothing else is sent"""
        response = self.client.post(
            reverse('api_upload_exam_card_for', args=['CS/001/2021']),
            data=b'\xff\xd8' + b'0' * 2046,
            content_type='image/jpeg',
        )

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['fileName'], 'exam_card')
        self.assertTrue(ExamCard.objects.filter(student=self.student).exists())

    def test_exam_card_for_multipart(self):
        response = self.client.post(reverse('api_upload_exam_card_for', args=['CS/001/2021']), {'examCard': make_file()})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['registrationNumber'], 'CS/001/2021')

    def test_exam_card_for_rejects_other_bodies(self):
        url = reverse('api_upload_exam_card_for', args=['CS/001/2021'])
        response = self.client.post(url, data='card', content_type='text/plain')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'Unsupported content type')

        response = self.client.post(url, data=b'', content_type='application/octet-stream')
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'File is required')
        self.assertFalse(StudentDocument.objects.exists())

    def test_exam_card_too_small(self):
        response = self.client.post(reverse('api_upload_exam_card'), {
            'registrationNumber': 'CS/001/2021',
            'file': make_file(size=100),
        })
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'File too small')

    def test_unknown_student_still_recorded(self):
        response = self.client.post(reverse('api_upload_results'), {
            'registration_number': 'XX/404/2020',
            'result': make_file(),
        })

        self.assertEqual(response.status_code, 201)
        self.assertTrue(StudentDocument.objects.filter(registration_number='XX/404/2020').exists())
        self.assertFalse(ResultRecord.objects.exists())

    def test_missing_file(self):
        response = self.client.post(reverse('api_upload_fees_receipt'), {'registrationNumber': 'CS/001/2021'})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error'], 'File is required')

    def test_upload_requires_admin(self):
        self.client.logout()
        response = self.client.post(reverse('api_upload_fees_structure'), {
            'registrationNumber': 'CS/001/2021',
            'file': make_file(),
        })
        self.assertEqual(response.status_code, 401)
        self.assertEqual(self.client_stub.objects, {})

    def test_student_fee_statement_upload(self):
        response = self.client.post(reverse('api_student_upload_fee_statement', args=[self.student.id]), {
            'feesStatement': make_file(),
        })

        self.assertEqual(response.status_code, 201)
        record = Finance.objects.get(student=self.student)
        self.assertEqual(record.statement, 'Fee Statement')
        self.assertEqual(record.statement_url, response.json()['data']['fileUrl'])

        response = self.client.get(reverse('api_fee_statement', args=[self.student.id]))
        self.assertEqual(response.json()['statement_url'], record.statement_url)

    def test_student_upload_unknown_student(self):
        response = self.client.post(
            reverse('api_student_upload_results', args=['00000000-0000-0000-0000-000000000000']),
            {'file': make_file()},
        )
        self.assertEqual(response.status_code, 404)
        self.assertEqual(self.client_stub.objects, {})

    def test_course_timetable_upload_and_lookup(self):
        response = self.client.post(reverse('api_upload_course_timetable'), {
            'registrationNumber': 'XX/404/2020',
            'schedule': make_file('timetable.pdf'),
        })
        self.assertEqual(response.status_code, 201)

        timetable = Timetable.objects.get()
        self.assertIsNone(timetable.student)
        self.assertEqual((timetable.course, timetable.semester), ('General', 'Current'))

        response = self.client.get(reverse('api_timetable', args=['General', 'Current']))
        self.assertEqual(response.json()['timetable_url'], timetable.timetable_url)

        response = self.client.get(reverse('api_timetable', args=['General', 'Semester 9']))
        self.assertEqual(response.status_code, 404)

    def test_list_documents(self):
        self.client.post(reverse('api_upload_fees_structure'), {'registrationNumber': 'CS/001/2021', 'file': make_file('a.pdf')})
        self.client.post(reverse('api_upload_fees_receipt'), {'registrationNumber': 'CS/001/2021', 'file': make_file('b.pdf')})

        response = self.client.get(reverse('api_documents', args=['CS/001/2021']))
        body = response.json()
        self.assertEqual(body['count'], 2)
        self.assertEqual([d['documentType'] for d in body['data']], ['fees-receipt', 'fees-structure'])

        response = self.client.get(reverse('api_student_documents', args=[self.student.id]))
        self.assertEqual(response.json()['count'], 2)

    def test_exam_card_fee_gate(self):
        """Test the exam card is withheld while a balance is outstanding"""
        self.client.post(reverse('api_upload_exam_card'), {'registrationNumber': 'CS/001/2021', 'file': make_file()})
        fee = Fee.objects.create(student=self.student, fee_balance=Decimal('750.00'))

        response = self.client.get(reverse('api_student_exam_card', args=[self.student.id]))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['fee_balance'], 750.0)

        fee.fee_balance = Decimal('0.00')
        fee.save()
        response = self.client.get(reverse('api_student_exam_card', args=[self.student.id]))
        self.assertEqual(response.status_code, 200)
        self.assertIn('file_url', response.json())

    def test_exam_card_missing(self):
        response = self.client.get(reverse('api_student_exam_card', args=[self.student.id]))
        self.assertEqual(response.status_code, 404)

    def test_student_sees_only_own_documents(self):
        self.client.logout()
        session = self.client.session
        session['student_id'] = str(self.student.id)
        session.save()

        response = self.client.get(reverse('api_documents', args=['CS/001/2021']))
        self.assertEqual(response.status_code, 200)

        response = self.client.get(reverse('api_documents', args=['XX/404/2020']))
        self.assertEqual(response.status_code, 403)

    def test_create_student_with_photo(self):
        response = self.client.post(reverse('api_students'), {
            'name': 'Amina Hassan',
            'registration_number': 'BBA/010/2022',
            'course': 'Business Administration',
            'level_of_study': '1',
            'photo': SimpleUploadedFile('amina.jpg', b'\xff\xd8' + b'0' * 200, content_type='image/jpeg'),
        })

        self.assertEqual(response.status_code, 201)
        photo_url = response.json()['student']['photo_url']
        self.assertTrue(photo_url.startswith('https://storage.test/signed/photos/student_BBA-010-2022_'))

    def test_create_duplicate_student_with_photo_discards_it(self):
        response = self.client.post(reverse('api_students'), {
            'name': 'Jane Wanjiku',
            'registration_number': 'CS/001/2021',
            'course': 'Computer Science',
            'level_of_study': '2',
            'photo': SimpleUploadedFile('jane.jpg', b'\xff\xd8' + b'0' * 200, content_type='image/jpeg'),
        })
        self.assertEqual(response.status_code, 409)
        self.assertEqual(self.client_stub.objects, {})

    def test_upload_photo_endpoint(self):
        response = self.client.post(
            reverse('api_upload_student_photo', args=['CS/001/2021']),
            {'photo': SimpleUploadedFile('jane.gif', b'GIF89a' + b'0' * 50, content_type='image/gif')},
        )
        self.assertEqual(response.status_code, 200)
        self.student.refresh_from_db()
        self.assertEqual(self.student.photo_url, response.json()['photo_url'])
