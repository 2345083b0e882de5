import json


def _encode(data, empty='{}'):
    """
    JSON-encode ``data`` unless it already is a string. Empty values become
    ``empty``.
    """
    if not data:
        return empty
    if isinstance(data, str):
        return data
    return json.dumps(data)


class Command(object):
    """
    One method per Elasticsearch REST endpoint, issued through a
    :py:class:`.connection.Connection`.

    Methods return whatever the connection returns: the decoded response
    body, ``True`` for successful HEAD probes, or ``False`` when the server
    answers 404.

    Document endpoints follow the connection's ``dsl_version``: from version
    7 on documents live under ``_doc`` and ``type`` arguments are ignored.
    """

    def __init__(self, db):
        self.db = db

    @property
    def typeless(self):
        return self.db.dsl_version >= 7

    # Aliases

    def add_alias(self, index, name, options=None):
        return bool(self.db.put([index, '_alias', name], {},
                                json.dumps(options or {})))

    def alias_exists(self, name):
        return bool(self.get_indexes_by_alias(name))

    def alias_actions(self, actions):
        """
        Run several alias manipulations at once, e.g.::

            [{'add': {'index': 'index1', 'alias': 'alias1'}},
             {'remove': {'index': 'index2', 'alias': 'alias2'}}]
        """
        return bool(self.db.post(['_aliases'], {},
                                 json.dumps({'actions': actions})))

    def get_alias_info(self):
        return self.db.get(['_alias', '*']) or {}

    def get_index_aliases(self, index):
        response = self.db.get([index, '_alias', '*'])
        if not response:
            return {}
        return response[index]['aliases']

    def get_index_info_by_alias(self, alias):
        return self.db.get(['_alias', alias]) or {}

    def get_indexes_by_alias(self, alias):
        return list(self.get_index_info_by_alias(alias))

    def remove_alias(self, index, alias):
        return bool(self.db.delete([index, '_alias', alias]))

    # Indices

    def create_index(self, index, configuration=None):
        body = json.dumps(configuration) if configuration is not None else None
        return self.db.put([index], {}, body)

    def delete_index(self, index):
        return self.db.delete([index])

    def delete_all_indexes(self):
        """
        Requires the ``action.destructive_requires_name`` cluster setting to
        be ``false``.
        """
        return self.db.delete(['_all'])

    def index_exists(self, index):
        return self.db.head([index])

    def open_index(self, index):
        return self.db.post([index, '_open'])

    def close_index(self, index):
        return self.db.post([index, '_close'])

    def refresh_index(self, index):
        return self.db.post([index, '_refresh'])

    def flush_index(self, index='_all'):
        return self.db.post([index, '_flush'])

    def clear_index_cache(self, index):
        return self.db.post([index, '_cache', 'clear'])

    def get_index_stats(self, index='_all'):
        return self.db.get([index, '_stats'])

    def get_index_recovery_stats(self, index='_all'):
        return self.db.get([index, '_recovery'])

    def get_settings(self, index='_all'):
        return self.db.get([index, '_settings'])

    def update_settings(self, index, setting, options=None):
        body = _encode(setting, None) if setting is not None else None
        return self.db.put([index, '_settings'], options, body)

    def update_analyzers(self, index, setting, options=None):
        """
        Analyzers can only be changed on a closed index: close it, update the
        settings and open it again.
        """
        self.close_index(index)
        try:
            return self.update_settings(index, setting, options)
        finally:
            self.open_index(index)

    def get_mapping(self, index='_all', type=None):
        url = [index, '_mapping']
        if not self.typeless and type is not None:
            url.append(type)
        return self.db.get(url)

    def set_mapping(self, index, mapping, type=None, options=None):
        body = _encode(mapping, None) if mapping is not None else None
        if self.typeless:
            url = [index, '_mapping']
        else:
            url = [index, '_mapping', type]
        return self.db.put(url, options, body)

    # Templates

    def create_index_template(self, name, pattern, settings, mappings,
                              aliases=None, options=None):
        body = {
            'index_patterns': pattern,
            'template': {
                'settings': settings or {},
                'mappings': mappings or {},
                'aliases': aliases or {},
            },
        }
        body.update(options or {})
        return self.db.put(['_index_template', name], {}, json.dumps(body))

    def get_index_template(self, name):
        return self.db.get(['_index_template', name])

    def delete_index_template(self, name):
        return self.db.delete(['_template', name])

    # Documents

    def insert(self, index, data, id=None, type=None, options=None):
        """
        Store a document. Without an ``id`` the server picks one.
        """
        body = _encode(data)
        if id is not None:
            if self.typeless:
                return self.db.put([index, '_doc', id], options, body)
            return self.db.put([index, type, id], options, body)
        if self.typeless:
            return self.db.post([index, '_doc'], options, body)
        return self.db.post([index, type], options, body)

    def get(self, index, id, type=None, options=None):
        if self.typeless:
            return self.db.get([index, '_doc', id], options)
        return self.db.get([index, type, id], options)

    def get_source(self, index, id, type=None):
        if self.typeless:
            return self.db.get([index, '_source', id])
        return self.db.get([index, type, id])

    def exists(self, index, id, type=None):
        if self.typeless:
            return self.db.head([index, '_doc', id])
        return self.db.head([index, type, id])

    def mget(self, index, ids, type=None, options=None):
        body = json.dumps({'ids': list(ids)})
        if self.typeless:
            return self.db.get([index, '_mget'], options, body)
        return self.db.get([index, type, '_mget'], options, body)

    def update(self, index, id, data, type=None, options=None):
        options = dict(options or {})
        body = {'doc': data or {}}
        if 'detect_noop' in options:
            body['detect_noop'] = options.pop('detect_noop')
        if self.typeless:
            return self.db.post([index, '_update', id], options,
                                json.dumps(body))
        return self.db.post([index, type, id, '_update'], options,
                            json.dumps(body))

    def delete(self, index, id, type=None, options=None):
        if self.typeless:
            return self.db.delete([index, '_doc', id], options)
        return self.db.delete([index, type, id], options)

    def delete_by_query(self, index, query, type=None, options=None):
        """
        Delete the documents matching ``query``, which must be a full request
        body with a ``query`` member. The body is passed through unchecked
        beyond that.
        """
        if 'query' not in query:
            raise ValueError('Can not call delete_by_query when no query is given.')
        url = [index]
        if not self.typeless and type is not None:
            url.append(type)
        url.append('_delete_by_query')
        return self.db.post(url, options, json.dumps(query))

    # Search

    def search(self, index, query=None, type=None, options=None):
        url = [index]
        if not self.typeless and type is not None:
            url.append(type)
        url.append('_search')
        return self.db.get(url, options, _encode(query))

    def suggesters(self, index='_all', suggester=None, options=None):
        body = '{"suggest":%s,"size":0}' % _encode(suggester)
        result = self.db.post([index, '_search'], options, body)
        if not result:
            return result
        return result['suggest']

    def scroll(self, options=None):
        """
        Fetch the next batch of a scrolling search. ``scroll`` and
        ``scroll_id`` are sent in the body, any other option in the query
        string.
        """
        options = dict(options or {})
        body = dict((key, options.pop(key)) for key in ('scroll', 'scroll_id')
                    if options.get(key))
        return self.db.post(['_search', 'scroll'], options, json.dumps(body))

    def clear_scroll(self, options=None):
        options = dict(options or {})
        body = {}
        if options.get('scroll_id'):
            body['scroll_id'] = options.pop('scroll_id')
        return self.db.delete(['_search', 'scroll'], options, json.dumps(body))
