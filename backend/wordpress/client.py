from backend.core.integrations import RestClient


class WordPressClient(RestClient):
    api_path = 'wp-json/wp/v2'
    name = 'WordPress'

    @classmethod
    def from_settings(cls, wp_settings):
        return cls(wp_settings.site_url, wp_settings.username, wp_settings.application_password)

    def site_info(self):
        data, _ = self.request('GET', f"{self.base_url}/wp-json", absolute=True)
        data = data or {}
        return {
            'name': data.get('name', ''),
            'description': data.get('description', ''),
            'url': data.get('url') or self.base_url,
        }

    def published_posts(self):
        return self.paginate('posts', {'status': 'publish', '_embed': 1})

    def create_post(self, title, content, status='draft', excerpt=''):
        return self.post('posts', {'title': title, 'content': content, 'status': status, 'excerpt': excerpt})
