from datetime import datetime

from gbacore.gpio import (
    GPIO_REG_CTRL,
    GPIO_REG_DATA,
    GPIO_REG_DIRECTION,
    Gpio,
    Rtc,
    RtcRegister,
    RtcState,
    to_bcd,
)

FIXED = datetime(2023, 5, 17, 14, 30, 45)


def fixed_clock():
    return FIXED


CS = 0b100


def select(rtc):
    rtc.write(0)
    rtc.write(CS)


def send_byte(rtc, byte):
    for n in range(8):
        sio = ((byte >> n) & 1) << 1
        rtc.write(CS | sio)
        rtc.write(CS | sio | 1)


def receive_bits(rtc, count):
    value = 0
    for n in range(count):
        rtc.write(CS)
        rtc.write(CS | 1)
        value |= ((rtc.read() >> 1) & 1) << n
    return value


def command(register, read):
    return 0x60 | (int(register) << 1) | int(read)


def bytes_of(value, count):
    return [(value >> (8 * i)) & 0xFF for i in range(count)]


def test_to_bcd_reads_back_as_decimal():
    for n in range(100):
        assert int(f"{to_bcd(n):02x}") == n


def test_to_bcd_keeps_last_two_digits():
    assert to_bcd(123) == to_bcd(23)


def test_date_time_layout_12h():
    rtc = Rtc(fixed_clock)
    expected = [to_bcd(v) for v in (23, 5, 17, 3, 2, 30, 45)]
    assert bytes_of(rtc.date_time(), 7) == expected


def test_time_is_top_three_date_time_bytes():
    rtc = Rtc(fixed_clock)
    assert rtc.time() == (rtc.date_time() >> 32) & 0xFFFFFF


def test_read_date_time_over_serial():
    rtc = Rtc(fixed_clock)
    select(rtc)
    send_byte(rtc, command(RtcRegister.DATE_TIME, True))
    assert rtc.state == RtcState.SEND
    assert receive_bits(rtc, 56) == rtc.date_time()
    assert rtc.state == RtcState.COMMAND


def test_read_time_over_serial():
    rtc = Rtc(fixed_clock)
    select(rtc)
    send_byte(rtc, command(RtcRegister.TIME, True))
    assert receive_bits(rtc, 24) == rtc.time()


def test_bit_reversed_command_is_accepted():
    rtc = Rtc(fixed_clock)
    select(rtc)
    reversed_cmd = int(f"{command(RtcRegister.DATE_TIME, True):08b}"[::-1], 2)
    send_byte(rtc, reversed_cmd)
    assert rtc.state == RtcState.SEND
    assert rtc.active_register == RtcRegister.DATE_TIME


def test_write_control_clears_poweroff_and_enables_24h():
    rtc = Rtc(fixed_clock)
    select(rtc)
    send_byte(rtc, command(RtcRegister.CONTROL, False))
    send_byte(rtc, 0xC2)
    assert rtc.control == 0x42
    assert rtc.mode_24h is True
    assert bytes_of(rtc.date_time(), 7)[4] == to_bcd(14)


def test_read_control_masks_bits():
    rtc = Rtc(fixed_clock)
    rtc.control = 0xFF
    select(rtc)
    send_byte(rtc, command(RtcRegister.CONTROL, True))
    assert receive_bits(rtc, 8) == 0xFF & 0b01001010


def test_reset_command_clears_control():
    rtc = Rtc(fixed_clock)
    rtc.control = 0x40
    select(rtc)
    send_byte(rtc, command(RtcRegister.RESET, False))
    assert rtc.control == 0
    assert rtc.state == RtcState.COMMAND


def test_nothing_happens_without_chip_select():
    rtc = Rtc(fixed_clock)
    rtc.write(0)
    for _ in range(8):
        rtc.write(0b010)
        rtc.write(0b011)
    assert rtc.data_count == 0
    assert rtc.state == RtcState.COMMAND


def test_gpio_control_keeps_low_bit():
    gpio = Gpio(rtc_enabled=False)
    gpio.write(GPIO_REG_CTRL, 0xFF)
    assert gpio.read(GPIO_REG_CTRL) == 1
    gpio.write(GPIO_REG_CTRL, 0xFE)
    assert gpio.read(GPIO_REG_CTRL) == 0


def test_gpio_data_without_rtc_reads_zero():
    gpio = Gpio(rtc_enabled=False)
    gpio.write(GPIO_REG_DATA, 0b111)
    assert gpio.read(GPIO_REG_DATA) == 0
    assert gpio.rtc_enabled is False


def test_gpio_data_forwards_to_rtc():
    gpio = Gpio(rtc_enabled=True, clock=fixed_clock)
    gpio.write(GPIO_REG_DATA, 0b010)
    assert gpio.read(GPIO_REG_DATA) == gpio.rtc.read()
    assert gpio.rtc.sio is True


def test_gpio_direction_reads_zero():
    gpio = Gpio(rtc_enabled=True, clock=fixed_clock)
    gpio.write(GPIO_REG_DIRECTION, 0xFF)
    assert gpio.read(GPIO_REG_DIRECTION) == 0