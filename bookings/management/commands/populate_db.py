from decimal import Decimal

from django.core.management.base import BaseCommand

from bookings.catalog import slug_for
from bookings.models import Room, RoomType


class Command(BaseCommand):
    help = 'Populate database with sample room types and rooms'

    def handle(self, *args, **options):
        room_types_data = [
            {
                'name': RoomType.Name.VALUE,
                'tagline': 'Simple and clean for a quick rest',
                'capacity': '1-2 guests',
                'rates': ('350.00', '550.00', '850.00', '1200.00'),
                'rooms': ['101V', '102V', '103V'],
            },
            {
                'name': RoomType.Name.STANDARD,
                'tagline': 'Comfortable room with city view',
                'capacity': '2 guests',
                'rates': ('500.00', '750.00', '1100.00', '1600.00'),
                'rooms': ['201S', '202S', '203S'],
            },
            {
                'name': RoomType.Name.DELUXE,
                'tagline': 'More space and a bigger bed',
                'capacity': '2-3 guests',
                'rates': ('700.00', '1000.00', '1500.00', '2200.00'),
                'rooms': ['301D', '302D'],
            },
            {
                'name': RoomType.Name.SUPERIOR,
                'tagline': 'Deluxe comfort with a lounge corner',
                'capacity': '3 guests',
                'rates': ('900.00', '1300.00', '1900.00', '2800.00'),
                'rooms': ['401R', '402R'],
            },
            {
                'name': RoomType.Name.SUITE,
                'tagline': 'Separate living area for families',
                'capacity': '4 guests',
                'rates': ('1200.00', '1800.00', '2600.00', '3800.00'),
                'rooms': ['501U'],
            },
        ]

        for data in room_types_data:
            rate_3h, rate_6h, rate_12h, rate_24h = (Decimal(r) for r in data['rates'])
            room_type, created = RoomType.objects.update_or_create(
                name=data['name'],
                defaults={
                    'slug': slug_for(data['name']),
                    'tagline': data['tagline'],
                    'capacity': data['capacity'],
                    'rate_3h': rate_3h,
                    'rate_6h': rate_6h,
                    'rate_12h': rate_12h,
                    'rate_24h': rate_24h,
                },
            )
            verb = 'Created' if created else 'Updated'
            self.stdout.write(f'{verb} room type: {room_type}')

            for number in data['rooms']:
                room, created = Room.objects.get_or_create(number=number, defaults={'room_type': room_type})
                if created:
                    self.stdout.write(f'Created room: {room.number} - {room_type}')
                else:
                    self.stdout.write(f'Room {room.number} already exists')

        self.stdout.write(
            self.style.SUCCESS('Successfully populated database with sample data')
        )
