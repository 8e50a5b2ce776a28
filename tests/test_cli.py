from fitdesk.models.subscription import SubscriptionPlan
from fitdesk.models.user import User, Role


def test_init_db_seeds_plans_once(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=['init-db'])
    assert 'Created plan: Basic' in result.output
    assert 'Created plan: Pro' in result.output

    again = runner.invoke(args=['init-db'])
    assert 'Created plan' not in again.output

    with app.app_context():
        assert SubscriptionPlan.query.count() == 2


def test_create_admin(app):
    runner = app.test_cli_runner()
    result = runner.invoke(args=['create-admin', '--email', ' Boss@FitDesk.com ',
                                 '--password', 'boss1234', '--name', 'Boss'])
    assert 'Created super admin: boss@fitdesk.com' in result.output

    with app.app_context():
        user = User.query.filter_by(email='boss@fitdesk.com').one()
        assert user.role == Role.SUPER_ADMIN
        assert user.check_password('boss1234')


def test_create_admin_rejects_duplicates_and_short_passwords(app, seed):
    runner = app.test_cli_runner()

    duplicate = runner.invoke(args=['create-admin', '--email', 'admin@fitdesk.com',
                                    '--password', 'whatever1', '--name', 'Again'])
    assert 'already exists' in duplicate.output

    short = runner.invoke(args=['create-admin', '--email', 'new@fitdesk.com',
                                '--password', '123', '--name', 'New'])
    assert 'at least 6 characters' in short.output
