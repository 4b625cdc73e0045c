#!/usr/bin/env python3
"""
Tests for ObjectStoreFileSystem over an in-memory S3 client.

Covers:
1. Directory synthesis (common prefixes, zero-byte markers)
2. Pagination transparency, entry caps and the page ceiling
3. Stat branches for account-wide and bucket-scoped roots
4. Ranged reads through open()
5. Not-found classification and partial listing failures
6. Region routing and cancellation
"""

import io
import os
import sys
import unittest
from datetime import datetime, timezone

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from botocore.exceptions import ClientError, EndpointConnectionError

from fake_s3 import FakeS3Client, client_error
from bucketview.services.filesystem import (
    AccountRoot,
    BackendError,
    BucketRoot,
    CallContext,
    ConfigurationError,
    MAX_LISTING_PAGES,
    NotFoundError,
    ObjectStoreFileSystem,
    OperationCancelled,
    PartialListingError,
    RegionRouter,
    is_not_found_error,
)

DOCS_CREATED = datetime(2019, 3, 4, tzinfo=timezone.utc)
LOGS_CREATED = datetime(2018, 7, 1, tzinfo=timezone.utc)


def router_for(client, region='us-east-1'):
    return RegionRouter(default_region=region, clients={region: client})


def docs_client(page_size=1000):
    client = FakeS3Client(page_size=page_size)
    client.add_bucket('docs', created=DOCS_CREATED)
    client.put('docs', 'a.txt', b'0123456789')
    client.put('docs', 'sub/', b'')
    client.put('docs', 'sub/b.txt', b'hello')
    return client


def bucket_fs(client, max_entries=-1, prefix=''):
    return ObjectStoreFileSystem(
        router_for(client), bucket='docs', prefix=prefix,
        bucket_creation_dates={'docs': DOCS_CREATED}, max_entries=max_entries,
    )


def by_name(entries):
    return {e.name: e for e in entries}


class TestConstruction(unittest.TestCase):

    def test_prefix_without_bucket_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            ObjectStoreFileSystem(router_for(FakeS3Client()), bucket='', prefix='data')

    def test_invalid_max_entries_is_rejected(self):
        with self.assertRaises(ConfigurationError):
            ObjectStoreFileSystem(router_for(FakeS3Client()), bucket='docs', max_entries=-5)

    def test_bucket_root_requires_bucket(self):
        with self.assertRaises(ConfigurationError):
            BucketRoot(bucket='', prefix='data')

    def test_from_root_variants(self):
        router = router_for(FakeS3Client())
        scoped = ObjectStoreFileSystem.from_root(BucketRoot('docs', 'data'), router)
        self.assertEqual((scoped.bucket, scoped.prefix), ('docs', 'data'))
        account = ObjectStoreFileSystem.from_root(AccountRoot(), router)
        self.assertIsNone(account.bucket)
        with self.assertRaises(TypeError):
            ObjectStoreFileSystem.from_root('s3://docs', router)

    def test_resolve_paths(self):
        router = router_for(FakeS3Client())
        self.assertEqual(ObjectStoreFileSystem(router, bucket='docs').resolve('/a/b.txt'), ('docs', 'a/b.txt'))
        self.assertEqual(ObjectStoreFileSystem(router, bucket='docs', prefix='data').resolve('/a'), ('docs', 'data/a'))
        self.assertEqual(ObjectStoreFileSystem(router, bucket='docs', prefix='data').resolve('/'), ('docs', 'data'))
        account = ObjectStoreFileSystem(router)
        self.assertEqual(account.resolve('/'), (None, ''))
        self.assertEqual(account.resolve('/docs'), ('docs', ''))
        self.assertEqual(account.resolve('/docs/sub/b.txt'), ('docs', 'sub/b.txt'))


class TestReadDir(unittest.TestCase):

    def test_scenario_root_listing(self):
        entries = bucket_fs(docs_client()).read_dir('/')
        self.assertEqual(len(entries), 2)
        listed = by_name(entries)
        self.assertFalse(listed['a.txt'].is_dir)
        self.assertEqual(listed['a.txt'].size, 10)
        self.assertTrue(listed['sub/'].is_dir)
        self.assertEqual(listed['sub/'].size, 0)
        self.assertEqual(listed['sub/'].mod_time, DOCS_CREATED)

    def test_scenario_subdirectory_listing(self):
        entries = bucket_fs(docs_client()).read_dir('/sub')
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].name, 'sub/b.txt')
        self.assertFalse(entries[0].is_dir)
        self.assertEqual(entries[0].size, 5)

    def test_zero_byte_object_is_directory(self):
        client = docs_client()
        client.put('docs', 'empty.txt', b'')
        listed = by_name(bucket_fs(client).read_dir('/'))
        self.assertTrue(listed['empty.txt'].is_dir)
        self.assertEqual(listed['empty.txt'].size, 0)

    def test_pagination_is_transparent(self):
        counts = []
        for page_size in (1, 2, 3, 1000):
            client = FakeS3Client(page_size=page_size)
            client.add_bucket('docs')
            for i in range(9):
                client.put('docs', f"file{i}.txt", b'x' * (i + 1))
            client.put('docs', 'dir1/a', b'a')
            client.put('docs', 'dir2/b', b'b')
            counts.append(len(bucket_fs(client).read_dir('/')))
        self.assertEqual(counts, [11, 11, 11, 11])

    def test_unlimited_sends_no_page_size_hint(self):
        client = docs_client()
        bucket_fs(client).read_dir('/')
        self.assertEqual(client.calls_to('ListObjects')[0]['MaxKeys'], 1000)

    def test_max_entries_caps_results(self):
        client = FakeS3Client(page_size=2)
        client.add_bucket('docs')
        for i in range(10):
            client.put('docs', f"f{i:02d}", b'data')
        entries = bucket_fs(client, max_entries=3).read_dir('/')
        self.assertEqual([e.name for e in entries], ['f00', 'f01', 'f02'])
        self.assertEqual(client.calls_to('ListObjects')[0]['MaxKeys'], 3)
        self.assertEqual(len(client.calls_to('ListObjects')), 2)

    def test_max_entries_zero_returns_nothing(self):
        self.assertEqual(bucket_fs(docs_client(), max_entries=0).read_dir('/'), [])

    def test_page_ceiling(self):
        client = FakeS3Client(page_size=1)
        client.add_bucket('docs')
        for i in range(MAX_LISTING_PAGES + 5):
            client.put('docs', f"f{i:03d}", b'data')
        with self.assertLogs('bucketview.services.filesystem.s3', level='WARNING'):
            entries = bucket_fs(client).read_dir('/')
        self.assertEqual(len(entries), MAX_LISTING_PAGES)
        self.assertEqual(len(client.calls_to('ListObjects')), MAX_LISTING_PAGES)

    def test_marker_resumes_after_common_prefix(self):
        client = FakeS3Client(page_size=1)
        client.add_bucket('docs')
        client.put('docs', 'a/1', b'1')
        client.put('docs', 'a/2', b'2')
        client.put('docs', 'b.txt', b'3')
        names = [e.name for e in bucket_fs(client).read_dir('/')]
        self.assertEqual(names, ['a/', 'b.txt'])
        self.assertEqual(client.calls_to('ListObjects')[1]['Marker'], 'a/')

    def test_prefix_is_stripped_from_names(self):
        client = FakeS3Client()
        client.add_bucket('docs')
        client.put('docs', 'site/index.html', b'<html>')
        client.put('docs', 'site/img/logo.png', b'png')
        client.put('docs', 'other/secret', b'no')
        listed = by_name(bucket_fs(client, prefix='site').read_dir('/'))
        self.assertEqual(set(listed), {'img/', 'index.html'})
        self.assertEqual(client.calls_to('ListObjects')[0]['Prefix'], 'site/')

    def test_account_root_lists_buckets(self):
        client = docs_client()
        client.add_bucket('logs', created=LOGS_CREATED)
        fs = ObjectStoreFileSystem(router_for(client))
        entries = fs.read_dir('/')
        self.assertEqual([e.name for e in entries], ['docs', 'logs'])
        self.assertTrue(all(e.is_dir for e in entries))
        self.assertEqual(by_name(entries)['logs'].mod_time, LOGS_CREATED)

    def test_account_root_listing_is_capped(self):
        client = FakeS3Client()
        for name in ('a', 'b', 'c'):
            client.add_bucket(name)
        fs = ObjectStoreFileSystem(router_for(client), max_entries=2)
        self.assertEqual(len(fs.read_dir('/')), 2)

    def test_account_mode_names_include_bucket(self):
        fs = ObjectStoreFileSystem(router_for(docs_client()), bucket_creation_dates={'docs': DOCS_CREATED})
        listed = by_name(fs.read_dir('/docs'))
        self.assertEqual(set(listed), {'docs/a.txt', 'docs/sub/'})
        self.assertEqual([e.name for e in fs.read_dir('/docs/sub')], ['docs/sub/b.txt'])

    def test_failure_on_first_page_propagates(self):
        client = docs_client()
        client.fail('ListObjects', client_error('ListObjects', 'AccessDenied', 403))
        with self.assertRaises(BackendError) as ctx:
            bucket_fs(client).read_dir('/')
        self.assertNotIsInstance(ctx.exception, PartialListingError)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_failure_mid_pagination_discards_entries(self):
        client = FakeS3Client(page_size=1)
        client.add_bucket('docs')
        for i in range(5):
            client.put('docs', f"f{i}", b'data')
        client.fail('ListObjects', client_error('ListObjects', 'InternalError', 500), on_call=3)
        with self.assertRaises(PartialListingError) as ctx:
            bucket_fs(client).read_dir('/')
        self.assertEqual(ctx.exception.pages_fetched, 2)
        self.assertIsInstance(ctx.exception.__cause__, BackendError)

    def test_missing_bucket_mid_pagination_is_not_missing_directory(self):
        client = FakeS3Client(page_size=1)
        client.add_bucket('docs')
        for i in range(3):
            client.put('docs', f"f{i}", b'data')
        client.fail('ListObjects', client_error('ListObjects', 'NoSuchBucket', 404), on_call=2)
        fs = bucket_fs(client)
        with self.assertRaises(PartialListingError) as ctx:
            fs.read_dir('/')
        self.assertEqual(ctx.exception.pages_fetched, 1)
        self.assertIsInstance(ctx.exception.__cause__, NotFoundError)
        self.assertFalse(fs.is_not_exist(ctx.exception))
        self.assertTrue(fs.is_not_exist(ctx.exception.__cause__))

    def test_missing_bucket_is_not_found(self):
        fs = ObjectStoreFileSystem(router_for(FakeS3Client()))
        with self.assertRaises(NotFoundError) as ctx:
            fs.read_dir('/nope/dir')
        self.assertTrue(fs.is_not_exist(ctx.exception))


class TestStat(unittest.TestCase):

    def test_account_root_uses_earliest_creation_date(self):
        fs = ObjectStoreFileSystem(
            router_for(FakeS3Client()),
            bucket_creation_dates={'docs': DOCS_CREATED, 'logs': LOGS_CREATED},
        )
        info = fs.stat('/')
        self.assertTrue(info.is_dir)
        self.assertEqual(info.mod_time, LOGS_CREATED)

    def test_account_bucket_stat_uses_head_bucket(self):
        client = docs_client()
        fs = ObjectStoreFileSystem(router_for(client), bucket_creation_dates={'docs': DOCS_CREATED})
        info = fs.stat('/docs')
        self.assertEqual((info.name, info.is_dir, info.mod_time), ('docs', True, DOCS_CREATED))
        self.assertEqual(client.calls_to('HeadBucket'), [{'Bucket': 'docs'}])

    def test_account_missing_bucket(self):
        fs = ObjectStoreFileSystem(router_for(FakeS3Client()))
        with self.assertRaises(NotFoundError) as ctx:
            fs.stat('/missing')
        self.assertTrue(fs.is_not_exist(ctx.exception))

    def test_bucket_root(self):
        info = bucket_fs(docs_client()).stat('/')
        self.assertTrue(info.is_dir)
        self.assertEqual(info.mod_time, DOCS_CREATED)

    def test_directory_by_listing(self):
        client = FakeS3Client()
        client.add_bucket('docs')
        client.put('docs', 'implicit/child.txt', b'abc')
        info = bucket_fs(client).stat('/implicit')
        self.assertTrue(info.is_dir)
        self.assertEqual(info.mod_time, DOCS_CREATED)
        self.assertEqual(client.calls_to('HeadObject'), [])

    def test_file_by_head(self):
        info = bucket_fs(docs_client()).stat('/a.txt')
        self.assertEqual((info.name, info.size, info.is_dir), ('a.txt', 10, False))

    def test_missing_file(self):
        fs = bucket_fs(docs_client())
        with self.assertRaises(NotFoundError) as ctx:
            fs.stat('/nope.txt')
        self.assertTrue(fs.is_not_exist(ctx.exception))
        self.assertEqual(ctx.exception.key, 'nope.txt')

    def test_size_matches_stat(self):
        fs = bucket_fs(docs_client())
        self.assertEqual(fs.size('/sub/b.txt'), 5)


class TestOpen(unittest.TestCase):

    def test_full_read_matches_stat_size(self):
        fs = bucket_fs(docs_client())
        for path in ('/a.txt', '/sub/b.txt'):
            with fs.open(path) as reader:
                data = reader.read()
            self.assertEqual(len(data), fs.stat(path).size)

    def test_nothing_fetched_at_open(self):
        client = docs_client()
        bucket_fs(client).open('/a.txt')
        self.assertEqual(client.calls_to('GetObject'), [])

    def test_ranged_reads(self):
        client = docs_client()
        reader = bucket_fs(client).open('/a.txt')
        reader.seek(3)
        self.assertEqual(reader.read(4), b'3456')
        self.assertEqual(client.calls_to('GetObject')[-1]['Range'], 'bytes=3-6')
        reader.seek(-2, io.SEEK_END)
        self.assertEqual(reader.read(10), b'89')

    def test_seek_past_end_reads_eof(self):
        client = docs_client()
        reader = bucket_fs(client).open('/a.txt')
        reader.seek(100)
        self.assertEqual(reader.read(5), b'')
        self.assertEqual(client.calls_to('GetObject'), [])

    def test_negative_offset_read_fails(self):
        reader = bucket_fs(docs_client()).open('/a.txt')
        reader.seek(-1)
        with self.assertRaises(ValueError):
            reader.read(1)

    def test_open_missing_file(self):
        fs = bucket_fs(docs_client())
        with self.assertRaises(NotFoundError):
            fs.open('/missing.bin')


class TestErrorClassification(unittest.TestCase):

    def test_not_found_client_error(self):
        self.assertTrue(is_not_found_error(client_error('HeadObject', '404', 404)))
        self.assertTrue(is_not_found_error(client_error('GetObject', 'NoSuchKey', 404)))

    def test_other_errors_are_not_not_found(self):
        self.assertFalse(is_not_found_error(client_error('HeadObject', 'AccessDenied', 403)))
        self.assertFalse(is_not_found_error(client_error('ListObjects', 'InternalError', 500)))
        self.assertFalse(is_not_found_error(EndpointConnectionError(endpoint_url='https://s3')))
        self.assertFalse(is_not_found_error(FileNotFoundError('local')))
        self.assertFalse(is_not_found_error(None))

    def test_wrapped_errors_follow_cause_chain(self):
        try:
            try:
                raise client_error('HeadObject', '404', 404)
            except ClientError as exc:
                raise RuntimeError('wrapped') from exc
        except RuntimeError as wrapped:
            self.assertTrue(is_not_found_error(wrapped))

    def test_partial_listing_stops_cause_chain(self):
        try:
            try:
                raise client_error('ListObjects', 'NoSuchBucket', 404)
            except ClientError as exc:
                raise PartialListingError(
                    'listing aborted', pages_fetched=3, operation='list_objects', bucket='docs', key='',
                ) from exc
        except PartialListingError as partial:
            self.assertFalse(is_not_found_error(partial))

    def test_transport_errors_become_backend_errors(self):
        client = docs_client()
        client.fail('HeadObject', EndpointConnectionError(endpoint_url='https://s3'))
        fs = bucket_fs(client)
        with self.assertRaises(BackendError) as ctx:
            fs.stat('/a.txt')
        self.assertFalse(fs.is_not_exist(ctx.exception))


class TestRouting(unittest.TestCase):

    def test_requests_go_to_bucket_region(self):
        east, west = FakeS3Client('us-east-1'), FakeS3Client('eu-west-1')
        east.add_bucket('docs')
        west.add_bucket('eu-data', region='eu-west-1')
        west.put('eu-data', 'report.csv', b'a,b\n')
        router = RegionRouter(
            default_region='us-east-1',
            clients={'us-east-1': east, 'eu-west-1': west},
            bucket_regions={'docs': 'us-east-1', 'eu-data': 'eu-west-1'},
        )
        fs = ObjectStoreFileSystem(router)
        self.assertEqual(fs.stat('/eu-data/report.csv').size, 4)
        self.assertEqual(east.calls_to('HeadObject'), [])
        self.assertEqual(len(west.calls_to('HeadObject')), 1)

    def test_unknown_bucket_uses_default_region(self):
        east, west = FakeS3Client('us-east-1'), FakeS3Client('eu-west-1')
        router = RegionRouter('us-east-1', {'us-east-1': east, 'eu-west-1': west}, {'eu-data': 'eu-west-1'})
        self.assertIs(router.client_for('unknown'), east)
        self.assertIs(router.client_for(None), east)
        self.assertIs(router.client_for('eu-data'), west)

    def test_router_rejects_regions_without_clients(self):
        with self.assertRaises(ConfigurationError):
            RegionRouter('us-east-1', {'eu-west-1': FakeS3Client()})
        with self.assertRaises(ConfigurationError):
            RegionRouter('us-east-1', {'us-east-1': FakeS3Client()}, {'eu-data': 'eu-west-1'})

    def test_router_tables_are_read_only(self):
        router = RegionRouter('us-east-1', {'us-east-1': FakeS3Client()}, {'docs': 'us-east-1'})
        with self.assertRaises(TypeError):
            router.bucket_regions['docs'] = 'eu-west-1'


class TestCancellation(unittest.TestCase):

    def test_cancelled_context_makes_no_remote_calls(self):
        client = docs_client()
        ctx = CallContext()
        ctx.cancel()
        with self.assertRaises(OperationCancelled):
            bucket_fs(client).stat('/a.txt', ctx)
        self.assertEqual(client.calls, [])

    def test_expired_deadline(self):
        ctx = CallContext(timeout=0)
        with self.assertRaises(OperationCancelled):
            bucket_fs(docs_client()).read_dir('/', ctx)

    def test_cancel_aborts_pagination(self):
        client = FakeS3Client(page_size=1)
        client.add_bucket('docs')
        for i in range(10):
            client.put('docs', f"f{i}", b'data')
        ctx = CallContext()
        original = client.list_objects

        def cancel_after_second_page(**params):
            response = original(**params)
            if len(client.calls_to('ListObjects')) == 2:
                ctx.cancel()
            return response

        client.list_objects = cancel_after_second_page
        with self.assertRaises(OperationCancelled):
            bucket_fs(client).read_dir('/', ctx)
        self.assertEqual(len(client.calls_to('ListObjects')), 2)

    def test_reader_honors_context(self):
        client = docs_client()
        ctx = CallContext()
        reader = bucket_fs(client).open('/a.txt', ctx)
        ctx.cancel()
        with self.assertRaises(OperationCancelled):
            reader.read(2)


if __name__ == "__main__":
    import pytest
    sys.exit(pytest.main([__file__, "-v"]))
